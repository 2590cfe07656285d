"""Unit tests for genoview.views sibling views."""

import pytest

from genoview.constants import TOPIC_VIEW_SYNC
from genoview.core.region import GenomicRegion
from genoview.state.events import ViewSync
from genoview.state.store import field_filter
from genoview.views import MutationSummaryView, SampleMatrixView, SampleTableView

SAMPLES = [
    {"sample_id": "S001", "cancer_type": "BRCA", "age": 54},
    {"sample_id": "S002", "cancer_type": "LUAD", "age": 67},
    {"sample_id": "S003", "cancer_type": "BRCA", "age": 41},
    {"sample_id": "S004", "cancer_type": "COAD"},
]


def sync(bus, store, cause="selection-changed"):
    """Publish view-sync the way the coordinator does."""
    bus.publish(
        TOPIC_VIEW_SYNC,
        ViewSync(
            cause=cause,
            sample_ids=store.selected_sample_ids,
            feature_ids=store.selected_feature_ids,
            filters=store.filter_descriptions(),
        ),
    )


class TestSiblingView:
    """Tests for the shared view-sync behaviour."""

    @pytest.mark.unit
    def test_initial_state_from_store(self, bus, store):
        store.set_selection(["S002"])
        view = SampleTableView(bus, store, SAMPLES)
        assert view.sample_ids == {"S002"}
        assert view.revision == 0

    @pytest.mark.unit
    def test_sync_updates_state(self, bus, store):
        view = SampleTableView(bus, store, SAMPLES)
        store.set_selection(["S001"])
        sync(bus, store)
        assert view.sample_ids == {"S001"}
        assert view.revision == 1

    @pytest.mark.unit
    def test_two_views_of_same_kind(self, bus, store):
        first = SampleTableView(bus, store, SAMPLES)
        second = SampleTableView(bus, store, SAMPLES)
        sync(bus, store)
        assert first.revision == second.revision == 1

    @pytest.mark.unit
    def test_close_unsubscribes(self, bus, store):
        view = MutationSummaryView(bus, store, [])
        view.close()
        assert bus.subscriptions() == []
        sync(bus, store)
        assert view.revision == 0


class TestSampleTableView:
    """Tests for SampleTableView."""

    @pytest.mark.unit
    def test_requires_sample_id(self, bus, store):
        with pytest.raises(ValueError, match="sample_id"):
            SampleTableView(bus, store, [{"name": "x"}])

    @pytest.mark.unit
    def test_rows_filtered_and_flagged(self, bus, store):
        view = SampleTableView(bus, store, SAMPLES)
        store.set_filter("cancer_type", field_filter("cancer_type", "BRCA"))
        store.set_selection(["S003"])
        sync(bus, store)
        rows = view.rows()
        assert [r["sample_id"] for r in rows] == ["S001", "S003"]
        assert [r["selected"] for r in rows] == [False, True]
        assert [r["sample_id"] for r in view.selected_rows()] == ["S003"]

    @pytest.mark.unit
    def test_sort(self, bus, store):
        view = SampleTableView(bus, store, SAMPLES)
        view.sort_by("cancer_type", descending=True)
        assert [r["cancer_type"] for r in view.rows()] == ["LUAD", "COAD", "BRCA", "BRCA"]

    @pytest.mark.unit
    def test_missing_sort_values_last(self, bus, store):
        view = SampleTableView(bus, store, SAMPLES)
        view.sort_by("age")
        assert view.rows()[-1]["sample_id"] == "S004"

    @pytest.mark.unit
    def test_click_replaces(self, bus, store):
        view = SampleTableView(bus, store, SAMPLES)
        store.set_selection(["S001"])
        view.click("S002")
        assert store.selected_sample_ids == {"S002"}

    @pytest.mark.unit
    def test_additive_click_toggles(self, bus, store):
        view = SampleTableView(bus, store, SAMPLES)
        view.click("S001")
        view.click("S002", additive=True)
        assert store.selected_sample_ids == {"S001", "S002"}
        view.click("S001", additive=True)
        assert store.selected_sample_ids == {"S002"}

    @pytest.mark.unit
    def test_mutation_filter_narrows_rows(self, bus, store, mutations):
        linked = SampleTableView(bus, store, SAMPLES, mutations)
        unlinked = SampleTableView(bus, store, SAMPLES)
        store.set_filter("consequence", field_filter("consequence", "missense"))
        assert [r["sample_id"] for r in linked.rows()] == ["S001", "S002"]
        assert len(unlinked.rows()) == 4

    @pytest.mark.unit
    def test_filter_options(self, bus, store):
        view = SampleTableView(bus, store, SAMPLES)
        store.set_filter("cancer_type", field_filter("cancer_type", "BRCA"))
        assert view.filter_options("cancer_type", "age") == {
            "cancer_type": ["BRCA", "COAD", "LUAD"],
            "age": [41, 54, 67],
        }


class TestSampleMatrixView:
    """Tests for SampleMatrixView."""

    @pytest.mark.unit
    def test_grid_order(self, bus, store, matrix_cells):
        view = SampleMatrixView(bus, store, matrix_cells)
        grid = view.grid()
        assert grid.features == ["TP53", "ATP1B2"]
        assert grid.samples == ["S001", "S002", "S003"]
        assert grid.value("S003", "TP53").category == "nonsense"
        assert grid.value("S003", "ATP1B2") is None

    @pytest.mark.unit
    def test_selected_samples_first(self, bus, store, matrix_cells):
        view = SampleMatrixView(bus, store, matrix_cells)
        store.set_selection(["S003"])
        sync(bus, store)
        assert view.grid().samples[0] == "S003"

    @pytest.mark.unit
    def test_restrict_to_selection(self, bus, store, matrix_cells):
        view = SampleMatrixView(bus, store, matrix_cells, restrict_to_selection=True)
        store.set_selection(["S002"])
        sync(bus, store)
        grid = view.grid()
        assert grid.samples == ["S002"]
        assert grid.features == ["ATP1B2"]

    @pytest.mark.unit
    def test_filters_apply(self, bus, store, matrix_cells):
        view = SampleMatrixView(bus, store, matrix_cells)
        store.set_filter("category", field_filter("category", "missense"))
        # c3 has no category and passes
        assert {c.id for c in view.grid().cells.values()} == {"c1", "c3"}

    @pytest.mark.unit
    def test_click(self, bus, store, matrix_cells):
        view = SampleMatrixView(bus, store, matrix_cells)
        view.click("S001")
        assert store.selected_sample_ids == {"S001"}


class TestMutationSummaryView:
    """Tests for MutationSummaryView."""

    @pytest.mark.unit
    def test_summary(self, bus, store, mutations):
        summary = MutationSummaryView(bus, store, mutations).summary()
        assert summary.mutations == 5
        assert summary.samples == 4
        assert summary.unique_positions == 5
        assert summary.total_count == 12 + 4 + 1 + 2 + 1
        assert summary.by_consequence["missense"] == 16
        assert summary.mean_per_sample == pytest.approx(20 / 4)

    @pytest.mark.unit
    def test_follows_active_region(self, bus, store, mutations):
        view = MutationSummaryView(bus, store, mutations)
        store.set_region(GenomicRegion("chr17", 7_577_000, 7_578_000))
        assert view.revision == 1
        assert {m.id for m in view.visible()} == {"m1", "m2"}

    @pytest.mark.unit
    def test_selected_only(self, bus, store, mutations):
        view = MutationSummaryView(bus, store, mutations)
        store.set_selection(["S001"])
        sync(bus, store)
        assert {m.id for m in view.visible(selected_only=True)} == {"m1", "m5"}
        assert view.summary(selected_only=True).samples == 1

    @pytest.mark.unit
    def test_filter_by_consequence(self, bus, store, mutations):
        view = MutationSummaryView(bus, store, mutations)
        view.filter_by_consequence("missense")
        assert store.filter_descriptions()["consequence"]["values"] == ["missense"]
        assert view.summary().mutations == 2

    @pytest.mark.unit
    def test_sample_filter_narrows_mutations(self, bus, store, mutations):
        view = MutationSummaryView(bus, store, mutations, SAMPLES)
        store.set_filter("cancer_type", field_filter("cancer_type", "BRCA"))
        assert {m.id for m in view.visible()} == {"m1", "m3", "m5"}
        assert view.summary().samples == 2

    @pytest.mark.unit
    def test_consequence_options(self, bus, store, mutations):
        view = MutationSummaryView(bus, store, mutations)
        assert view.consequence_options() == ["frameshift", "missense", "nonsense", "splice"]

    @pytest.mark.unit
    def test_empty(self, bus, store):
        summary = MutationSummaryView(bus, store, []).summary()
        assert summary.mutations == 0
        assert summary.mean_per_sample == 0.0
