"""Tests for names and labels."""

import pytest
from shapely.geometry import box

from geo_ontology.area import AreaType
from geo_ontology.labels import build_label, compute_labels, compute_names


@pytest.fixture
def chain(make_area):
    """Country > region > city > suburb, linked by parent."""
    return [
        make_area(0, box(0, 0, 100, 100), name="France", area_type=AreaType.COUNTRY,
                  names={"en": "France", "de": "Frankreich"}),
        make_area(1, box(0, 0, 50, 50), name="Île-de-France", area_type=AreaType.REGION, parent=0),
        make_area(2, box(0, 0, 10, 10), name="Paris", area_type=AreaType.CITY, parent=1,
                  names={"de": "Paris"}),
        make_area(3, box(0, 0, 1, 1), name="Montmartre", area_type=AreaType.SUBURB, parent=2),
    ]


class TestComputeNames:
    """Tests for compute_names()."""

    def test_filters_languages(self, chain):
        """Test that only requested languages are kept."""
        compute_names(chain[0], ["de", "it"])
        assert chain[0].names == {"de": "Frankreich"}

    def test_no_languages_keeps_all(self, chain):
        """Test that an empty language list keeps every name."""
        compute_names(chain[0], [])
        assert chain[0].names == {"en": "France", "de": "Frankreich"}


class TestBuildLabel:
    """Tests for build_label()."""

    def test_default_label(self, chain):
        """Test that only city, state and country ancestors are named."""
        assert build_label(chain[3], chain) == "Montmartre, Paris, France"
        assert build_label(chain[1], chain) == "Île-de-France, France"
        assert build_label(chain[0], chain) == "France"

    def test_localized_label(self, chain):
        """Test names fall back to the default name."""
        assert build_label(chain[3], chain, "de") == "Montmartre, Paris, Frankreich"

    def test_repeated_names_collapsed(self, make_area):
        """Test that a city named like its state appears once."""
        areas = [
            make_area(0, box(0, 0, 10, 10), name="Berlin", area_type=AreaType.STATE),
            make_area(1, box(0, 0, 5, 5), name="Berlin", area_type=AreaType.CITY, parent=0),
        ]
        assert build_label(areas[1], areas) == "Berlin"

    def test_cycle_detected(self, make_area):
        """Test that a parent loop is reported."""
        areas = [
            make_area(0, box(0, 0, 1, 1), area_type=AreaType.CITY, parent=1),
            make_area(1, box(0, 0, 1, 1), area_type=AreaType.STATE, parent=0),
        ]
        with pytest.raises(ValueError):
            build_label(areas[0], areas)


class TestComputeLabels:
    """Tests for compute_labels()."""

    def test_all_labels(self, chain):
        """Test default and per-language labels of every area."""
        compute_labels(chain, ["en", "de"])

        assert chain[2].label == "Paris, France"
        assert chain[2].labels == {"en": "Paris, France", "de": "Paris, Frankreich"}
        assert chain[3].labels["en"] == "Montmartre, Paris, France"

    def test_no_languages(self, chain):
        """Test that no language gives no localized label."""
        compute_labels(chain, [])
        assert chain[0].label == "France"
        assert chain[0].labels == {}
