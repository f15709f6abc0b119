"""Tests for the MODIS L2 swath readers."""

from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from nsidc.sidecar.errors import BoundaryMetadataUnavailableError
from nsidc.sidecar.readers.modis import Modis05L2Reader, Modis09L2Reader, odl_values, parse_gring


@pytest.fixture
def archive_metadata():
    return """
GROUP                  = ARCHIVEDMETADATA
  GROUPTYPE            = MASTERGROUP

  GROUP                  = BOUNDINGRECTANGLE
    OBJECT                 = NORTHBOUNDINGCOORDINATE
      NUM_VAL              = 1
      VALUE                = 47.9
    END_OBJECT             = NORTHBOUNDINGCOORDINATE
  END_GROUP              = BOUNDINGRECTANGLE

  GROUP                  = GPOLYGON
    OBJECT                 = GPOLYGONCONTAINER
      CLASS                = "1"

      GROUP                  = GRING
        CLASS                = "1"
        OBJECT                 = EXCLUSIONGRINGFLAG
          NUM_VAL              = 1
          CLASS                = "1"
          VALUE                = "N"
        END_OBJECT             = EXCLUSIONGRINGFLAG
      END_GROUP              = GRING

      GROUP                  = GRINGPOINT
        CLASS                = "1"
        OBJECT                 = GRINGPOINTLONGITUDE
          NUM_VAL              = 4
          CLASS                = "1"
          VALUE                = (-67.9630891173521, -21.2339640209939, -36.3842975428496, -87.3838394669573)
        END_OBJECT             = GRINGPOINTLONGITUDE

        OBJECT                 = GRINGPOINTLATITUDE
          NUM_VAL              = 4
          CLASS                = "1"
          VALUE                = (43.1195162755847, 47.3404098883612, 29.8923049069722, 26.6084424437985)
        END_OBJECT             = GRINGPOINTLATITUDE
      END_GROUP              = GRINGPOINT
    END_OBJECT             = GPOLYGONCONTAINER
  END_GROUP              = GPOLYGON
END_GROUP              = ARCHIVEDMETADATA
END
"""


class TestGRing:

    def test_parse_gring(self, archive_metadata):
        corners = parse_gring(archive_metadata)
        assert corners == [
            (43.1195162755847, -67.9630891173521),
            (47.3404098883612, -21.2339640209939),
            (29.8923049069722, -36.3842975428496),
            (26.6084424437985, -87.3838394669573),
        ]

    def test_single_value_object(self, archive_metadata):
        with pytest.raises(BoundaryMetadataUnavailableError):
            odl_values(archive_metadata, "NORTHBOUNDINGCOORDINATE")

    def test_missing_gring(self):
        with pytest.raises(BoundaryMetadataUnavailableError) as exc_info:
            parse_gring("GROUP = ARCHIVEDMETADATA\nEND_GROUP = ARCHIVEDMETADATA\n")
        assert "GRINGPOINTLATITUDE not found" in str(exc_info.value)

    def test_wrong_point_count(self, archive_metadata):
        text = archive_metadata.replace("(43.1195162755847, ", "(")
        with pytest.raises(BoundaryMetadataUnavailableError):
            parse_gring(text)

    def test_malformed_values(self, archive_metadata):
        text = archive_metadata.replace("47.3404098883612", "north")
        with pytest.raises(BoundaryMetadataUnavailableError):
            parse_gring(text)


class TestModisReaders:

    def test_mod05_has_one_5km_grid(self):
        reader = Modis05L2Reader()
        assert reader.grid_name == "5km"
        assert reader.derived_resolutions() == []
        assert "Water_Vapor_Infrared" in reader.variable_names

    def test_mod09_derives_500m_and_250m(self):
        derived = Modis09L2Reader().derived_resolutions()
        assert [(d.name, d.source, d.factor) for d in derived] == [("500m", "1km", 2), ("250m", "1km", 4)]
        assert derived[0].variable_names[0] == "500m Surface Reflectance Band 1"
        assert len(derived[1].variable_names) == 7

    def test_read_boundary_corners(self, archive_metadata):
        sd = MagicMock()
        sd.attributes.return_value = {"ArchiveMetadata.0": archive_metadata}
        with patch.object(Modis05L2Reader, "_open", return_value=sd):
            corners = Modis05L2Reader().read_boundary_corners("MOD05_L2.A2021232.hdf")
        assert len(corners) == 4
        assert sd.end.called

    def test_read_boundary_corners_without_metadata(self):
        sd = MagicMock()
        sd.attributes.return_value = {}
        with patch.object(Modis05L2Reader, "_open", return_value=sd):
            with pytest.raises(BoundaryMetadataUnavailableError):
                Modis05L2Reader().read_boundary_corners("MOD05_L2.A2021232.hdf")

    def test_read_native_grids(self):
        pytest.importorskip("pyhdf")
        latitude = np.full((406, 270), 40.0, dtype=np.float32)
        longitude = np.full((406, 270), -105.0, dtype=np.float32)
        sd = MagicMock()
        sd.select.side_effect = lambda name: {"Latitude": latitude, "Longitude": longitude}[name]

        with patch.object(Modis05L2Reader, "_open", return_value=sd):
            [grid] = Modis05L2Reader().read_native_grids("MOD05_L2.A2021232.hdf")

        assert grid.name == "5km"
        assert grid.latitude.shape == (406, 270)
        assert grid.latitude.dtype == np.float64
        assert grid.variable_names[0] == "Scan_Start_Time"
        assert sd.end.called
