"""Unit tests for genoview.urlstate module."""

import pytest

from genoview.core.region import GenomicRegion
from genoview.errors import InvalidRegion
from genoview.urlstate import UrlState, apply_state, deserialize_state, serialize_state


class TestSerializeState:
    """Tests for serialize_state."""

    @pytest.mark.unit
    def test_region_only(self, store):
        assert serialize_state(store.snapshot()) == "chr=17&start=7565097&end=7590856"

    @pytest.mark.unit
    def test_selection_sorted(self, store):
        store.set_selection(["S004", "S001"], ["m2", "m1"])
        query = serialize_state(store.snapshot())
        assert query == "chr=17&start=7565097&end=7590856&samples=S001,S004&features=m1,m2"

    @pytest.mark.unit
    def test_equal_states_serialize_equally(self, store):
        store.set_selection(["S001", "S002"])
        first = serialize_state(store.snapshot())
        store.set_selection(["S002", "S001"])
        assert serialize_state(store.snapshot()) == first

    @pytest.mark.unit
    def test_include_genome(self, store):
        assert serialize_state(store.snapshot(), include_genome=True).endswith("&genome=hg38")

    @pytest.mark.unit
    def test_special_characters_escaped(self, store):
        store.set_selection(["TCGA 01&x"])
        query = serialize_state(store.snapshot())
        assert "samples=TCGA+01%26x" in query

    @pytest.mark.unit
    def test_requires_region(self, bus, hg38):
        from genoview.state.store import CohortStore

        with pytest.raises(ValueError, match="active region"):
            serialize_state(CohortStore(bus, hg38).snapshot())


class TestDeserializeState:
    """Tests for deserialize_state."""

    @pytest.mark.unit
    def test_round_trip(self, store, hg38, tp53_region):
        store.set_selection(["S001", "S004"], ["m1"])
        state = deserialize_state(serialize_state(store.snapshot()), hg38)
        assert state.region == tp53_region
        assert state.sample_ids == {"S001", "S004"}
        assert state.feature_ids == {"m1"}

    @pytest.mark.unit
    def test_ids_with_commas_and_percents_round_trip(self, store, hg38):
        store.set_selection(["S1,S2", "50%", "S3"], ["chr17:7577538,G>A"])
        query = serialize_state(store.snapshot())
        assert "samples=50%2525,S1%252CS2,S3" in query

        state = deserialize_state(query, hg38)
        assert state.sample_ids == {"S1,S2", "50%", "S3"}
        assert state.feature_ids == {"chr17:7577538,G>A"}

    @pytest.mark.unit
    def test_full_url(self, hg38, tp53_region):
        state = deserialize_state("https://viewer.example.org/tp53?chr=chr17&start=7565097&end=7590856", hg38)
        assert state.region == tp53_region
        assert state.sample_ids == frozenset()

    @pytest.mark.unit
    def test_leading_question_mark_and_commas(self, hg38, tp53_region):
        state = deserialize_state("?chr=17&start=7,565,097&end=7,590,856", hg38)
        assert state.region == tp53_region

    @pytest.mark.unit
    def test_blank_ids_ignored(self, hg38):
        state = deserialize_state("chr=17&start=1&end=100&samples=S001,,S002,", hg38)
        assert state.sample_ids == {"S001", "S002"}

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "query",
        [
            "start=1&end=100",
            "chr=17&end=100",
            "chr=17&start=1",
            "chr=17&start=abc&end=100",
            "chr=17&start=1&start=2&end=100",
            "chr=17&start=100&end=50",
            "chr=17&start=1&end=999999999",
            "chr=42&start=1&end=100",
        ],
    )
    def test_invalid(self, hg38, query):
        with pytest.raises(InvalidRegion):
            deserialize_state(query, hg38)

    @pytest.mark.unit
    def test_genome_mismatch_logged(self, hg38, caplog):
        state = deserialize_state("chr=17&start=1&end=100&genome=mm10", hg38)
        assert state.genome == "mm10"
        assert "mm10" in caplog.text


class TestApplyState:
    """Tests for apply_state."""

    @pytest.mark.unit
    def test_applies_region_and_selection(self, store):
        region = GenomicRegion("chr17", 7_577_000, 7_578_000)
        assert apply_state(store, UrlState(region, frozenset({"S001"}))) is True
        assert store.active_region == region
        assert store.selected_sample_ids == {"S001"}

    @pytest.mark.unit
    def test_rejected_region_leaves_state(self, store, tp53_region):
        store.set_selection(["S009"])
        bad = UrlState(GenomicRegion("chr21", 1, 999_999_999), frozenset({"S001"}))
        assert apply_state(store, bad) is False
        assert store.active_region == tp53_region
        assert store.selected_sample_ids == {"S009"}
