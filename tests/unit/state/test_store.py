"""Unit tests for genoview.state.store module."""

import pytest

from genoview.constants import TOPIC_FILTERS_CHANGED, TOPIC_REGION_CHANGED, TOPIC_SELECTION_CHANGED
from genoview.core.features import MutationFeature, feature_record
from genoview.core.region import GenomicRegion
from genoview.state.store import CohortStore, field_filter, filter_options, range_filter

SAMPLES = [
    {"sample_id": "S001", "cancer_type": "BRCA", "stage": "II"},
    {"sample_id": "S002", "cancer_type": "LUAD", "stage": "I"},
    {"sample_id": "S003", "cancer_type": "BRCA"},
    {"sample_id": "S004", "cancer_type": "COAD", "stage": None},
    {"sample_id": "S005", "cancer_type": "BRCA", "stage": "III"},
]


def record_topic(bus, topic):
    events = []
    bus.subscribe(topic, events.append)
    return events


class TestRegion:
    """Tests for CohortStore.set_region."""

    @pytest.mark.unit
    def test_publishes_change(self, bus, store, tp53_region):
        events = record_topic(bus, TOPIC_REGION_CHANGED)
        target = GenomicRegion("chr17", 7_000_000, 7_100_000)
        assert store.set_region(target, source="test") is True
        assert store.active_region == target
        assert events[0].region == target
        assert events[0].previous == tp53_region
        assert events[0].source == "test"

    @pytest.mark.unit
    def test_rejects_region_past_chromosome(self, bus, store, tp53_region, hg38):
        events = record_topic(bus, TOPIC_REGION_CHANGED)
        length = hg38.chromosome_length("chr21")
        assert store.set_region(GenomicRegion("chr21", length - 5, length + 5)) is False
        assert store.active_region == tp53_region
        assert events == []

    @pytest.mark.unit
    def test_rejects_unknown_chromosome(self, store, tp53_region):
        assert store.set_region(GenomicRegion("chr42", 0, 100)) is False
        assert store.active_region == tp53_region

    @pytest.mark.unit
    def test_no_initial_region(self, bus, hg38):
        store = CohortStore(bus, hg38)
        assert store.active_region is None
        assert store.snapshot().active_region is None


class TestSelection:
    """Tests for sample and feature selection."""

    @pytest.mark.unit
    def test_add_remove_replace_toggle(self, store):
        assert store.toggle_sample_selection("S001") == {"S001"}
        assert store.toggle_sample_selection(["S002", "S003"], "add") == {"S001", "S002", "S003"}
        assert store.toggle_sample_selection("S002", "remove") == {"S001", "S003"}
        assert store.toggle_sample_selection(["S001", "S004"], "toggle") == {"S003", "S004"}
        assert store.toggle_sample_selection(["S009"], "replace") == {"S009"}

    @pytest.mark.unit
    def test_invalid_mode(self, store):
        with pytest.raises(ValueError, match="mode"):
            store.toggle_sample_selection("S001", "xor")

    @pytest.mark.unit
    def test_publishes_full_set(self, bus, store):
        events = record_topic(bus, TOPIC_SELECTION_CHANGED)
        store.toggle_sample_selection("S001", source="table")
        store.toggle_sample_selection("S002", source="matrix")
        assert [e.sample_ids for e in events] == [frozenset({"S001"}), frozenset({"S001", "S002"})]
        assert [e.source for e in events] == ["table", "matrix"]

    @pytest.mark.unit
    def test_every_subscriber_sees_update(self, bus, store):
        seen = {"a": [], "b": []}
        bus.subscribe(TOPIC_SELECTION_CHANGED, lambda e: seen["a"].append(e.sample_ids))
        bus.subscribe(TOPIC_SELECTION_CHANGED, lambda e: seen["b"].append(e.sample_ids))
        store.toggle_sample_selection("S001")
        assert seen["a"] == seen["b"] == [frozenset({"S001"})]

    @pytest.mark.unit
    def test_last_write_wins(self, store):
        store.set_selection(["S001"])
        store.set_selection(["S002"])
        assert store.selected_sample_ids == {"S002"}

    @pytest.mark.unit
    def test_feature_selection_independent(self, store):
        store.toggle_sample_selection("S001")
        store.toggle_feature_selection("m1")
        assert store.selected_sample_ids == {"S001"}
        assert store.selected_feature_ids == {"m1"}

    @pytest.mark.unit
    def test_update_selection_publishes_once(self, bus, store):
        events = record_topic(bus, TOPIC_SELECTION_CHANGED)
        store.update_selection(["S001"], ["m1"], "replace")
        assert len(events) == 1
        assert events[0].sample_ids == {"S001"}
        assert events[0].feature_ids == {"m1"}

    @pytest.mark.unit
    def test_clear_selection(self, store):
        store.set_selection(["S001"], ["m1"])
        store.clear_selection()
        assert store.selected_sample_ids == frozenset()
        assert store.selected_feature_ids == frozenset()


class TestPrune:
    """Tests for CohortStore.apply_prune."""

    @pytest.mark.unit
    def test_intersects_with_dataset(self, store):
        store.set_selection(["S001", "S002"])
        store.apply_prune({"S002", "S003"})
        assert store.selected_sample_ids == {"S002"}
        assert store.valid_sample_ids == {"S002", "S003"}

    @pytest.mark.unit
    def test_publishes_even_without_change(self, bus, store):
        store.set_selection(["S002"])
        events = record_topic(bus, TOPIC_SELECTION_CHANGED)
        store.apply_prune({"S002"}, source="coordinator")
        assert len(events) == 1
        assert events[0].source == "coordinator"

    @pytest.mark.unit
    def test_feature_ids_pruned_when_given(self, store):
        store.set_selection(["S001"], ["m1", "gone"])
        store.apply_prune({"S001"})
        assert store.selected_feature_ids == {"m1", "gone"}
        store.apply_prune({"S001"}, {"m1"})
        assert store.selected_feature_ids == {"m1"}


class TestFilters:
    """Tests for filter predicates and composition."""

    @pytest.mark.unit
    def test_field_filter_scalar_and_iterable(self):
        single = field_filter("gene", "TP53")
        many = field_filter("consequence", ["missense", "nonsense"])
        assert single({"gene": "TP53"})
        assert not single({"gene": "KRAS"})
        assert many({"consequence": "nonsense"})
        assert many.description == {"field": "consequence", "op": "in", "values": ["missense", "nonsense"]}

    @pytest.mark.unit
    def test_missing_field_passes(self):
        assert field_filter("gene", "TP53")({"sample_id": "S001"})
        assert range_filter("count", 2)({"sample_id": "S001"})

    @pytest.mark.unit
    def test_range_filter_inclusive(self):
        predicate = range_filter("count", 2, 4)
        assert [predicate({"count": c}) for c in (1, 2, 4, 5)] == [False, True, True, False]

    @pytest.mark.unit
    def test_range_filter_rejects_inverted_bounds(self):
        with pytest.raises(ValueError):
            range_filter("count", 5, 1)

    @pytest.mark.unit
    def test_composition_is_intersection(self, store, mutations):
        records = [feature_record(m) for m in mutations]
        store.set_filter("gene", field_filter("gene", "TP53"))
        store.set_filter("consequence", field_filter("consequence", "missense"))

        combined = {r["id"] for r in store.apply_filters(records)}
        by_gene = {r["id"] for r in records if field_filter("gene", "TP53")(r)}
        by_consequence = {r["id"] for r in records if field_filter("consequence", "missense")(r)}
        assert combined == by_gene & by_consequence == {"m1", "m2"}

    @pytest.mark.unit
    def test_set_filter_publishes_descriptions(self, bus, store):
        events = record_topic(bus, TOPIC_FILTERS_CHANGED)
        store.set_filter("gene", field_filter("gene", "TP53"), source="summary")
        assert events[0].filters == {"gene": {"field": "gene", "op": "in", "values": ["TP53"]}}
        assert events[0].source == "summary"

    @pytest.mark.unit
    def test_clear_filter(self, bus, store):
        store.set_filter("gene", field_filter("gene", "TP53"))
        events = record_topic(bus, TOPIC_FILTERS_CHANGED)
        assert store.clear_filter("missing") is False
        assert events == []
        assert store.clear_filter("gene") is True
        assert events[0].filters == {}

    @pytest.mark.unit
    def test_clear_filters(self, store):
        store.set_filter("gene", field_filter("gene", "TP53"))
        store.set_filter("count", range_filter("count", 2))
        store.clear_filters()
        assert store.filters == {}
        assert store.passes({"gene": "KRAS", "count": 0})


class TestLinkedCohort:
    """Tests for filtering samples and mutations together."""

    @pytest.mark.unit
    def test_no_filters_keeps_everything(self, store, mutations):
        cohort = store.linked_cohort(SAMPLES, mutations)
        assert cohort.sample_ids == {"S001", "S002", "S003", "S004", "S005"}
        assert cohort.counts == {"samples": 5, "mutations": 5}

    @pytest.mark.unit
    def test_mutation_filter_narrows_samples(self, store, mutations):
        store.set_filter("consequence", field_filter("consequence", "missense"))
        cohort = store.linked_cohort(SAMPLES, mutations)
        assert cohort.sample_ids == {"S001", "S002"}
        assert [m.id for m in cohort.mutations] == ["m1", "m2"]

    @pytest.mark.unit
    def test_sample_filter_narrows_mutations(self, store, mutations):
        store.set_filter("cancer_type", field_filter("cancer_type", "BRCA"))
        cohort = store.linked_cohort(SAMPLES, mutations)
        # S005 passes but carries no mutation
        assert cohort.sample_ids == {"S001", "S003"}
        assert [m.id for m in cohort.mutations] == ["m1", "m3", "m5"]

    @pytest.mark.unit
    def test_filters_combine_across_entities(self, store, mutations):
        store.set_filter("cancer_type", field_filter("cancer_type", "BRCA"))
        store.set_filter("recurrent", range_filter("count", 2))
        cohort = store.linked_cohort(SAMPLES, mutations)
        assert cohort.sample_ids == {"S001"}
        assert [m.id for m in cohort.mutations] == ["m1"]
        assert cohort.counts == {"samples": 1, "mutations": 1}

    @pytest.mark.unit
    def test_mutation_without_sample_row_judged_alone(self, store, mutations):
        orphan = MutationFeature.at("m9", 7_577_538, sample_id="S999", consequence="missense")
        store.set_filter("consequence", field_filter("consequence", "missense"))
        cohort = store.linked_cohort(SAMPLES, mutations + [orphan])
        assert [m.id for m in cohort.mutations] == ["m1", "m2", "m9"]
        assert cohort.sample_ids == {"S001", "S002"}


class TestFilterOptions:
    """Tests for filter_options."""

    @pytest.mark.unit
    def test_distinct_sorted_values(self):
        options = filter_options(SAMPLES, ["cancer_type", "stage"])
        assert options == {"cancer_type": ["BRCA", "COAD", "LUAD"], "stage": ["I", "II", "III"]}

    @pytest.mark.unit
    def test_missing_field_has_no_options(self):
        assert filter_options(SAMPLES, ["age"]) == {"age": []}

    @pytest.mark.unit
    def test_mutation_records(self, mutations):
        options = filter_options((feature_record(m) for m in mutations), ["consequence", "count"])
        assert options["consequence"] == ["frameshift", "missense", "nonsense", "splice"]
        assert options["count"] == [1, 2, 4, 12]


class TestSnapshot:
    """Tests for CohortStore.snapshot."""

    @pytest.mark.unit
    def test_snapshot_is_immutable_copy(self, store, tp53_region):
        store.set_selection(["S001"], ["m1"])
        store.set_filter("gene", field_filter("gene", "TP53"))
        snapshot = store.snapshot()
        store.clear_selection()

        assert snapshot.genome == "hg38"
        assert snapshot.active_region == tp53_region
        assert snapshot.selected_sample_ids == {"S001"}
        assert snapshot.selected_feature_ids == {"m1"}
        assert snapshot.filters["gene"]["values"] == ["TP53"]
        with pytest.raises(AttributeError):
            snapshot.genome = "hg19"  # type: ignore[misc]
