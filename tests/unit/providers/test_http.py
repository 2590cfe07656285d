"""Unit tests for genoview.providers.http module."""

import httpx
import pytest

from genoview.core.coords import Resolution
from genoview.core.features import (
    AlignmentFeature,
    CoverageBin,
    GeneFeature,
    MatrixCell,
    MutationFeature,
    TrackKind,
)
from genoview.providers import CancellationToken, HttpFeatureProvider, decode_features

GENES_RESPONSE = {
    "features": [
        {
            "id": "ENSG00000141510",
            "start": 7_565_097,
            "end": 7_590_856,
            "symbol": "TP53",
            "strand": "-",
            "biotype": "protein_coding",
            "exons": [{"start": 7_565_097, "end": 7_565_332, "kind": "utr3"}, {"start": 7_577_000, "end": 7_577_600}],
            "source_db": "ensembl",
        }
    ]
}

MUTATIONS_RESPONSE = [
    {"id": "m1", "position": 7_577_538, "sample_id": "S001", "consequence": "missense", "count": 12},
    {"position": 7_577_120, "sample_id": "S002", "consequence": "nonsense"},
]


class TestDecodeFeatures:
    """Tests for decode_features."""

    @pytest.mark.unit
    def test_genes_with_exons(self):
        (gene,) = decode_features(TrackKind.GENE, GENES_RESPONSE)
        assert isinstance(gene, GeneFeature)
        assert gene.symbol == "TP53"
        assert gene.exons[0].kind == "utr3"
        assert gene.exons[1].kind == "exon"

    @pytest.mark.unit
    def test_mutations_from_position(self):
        first, second = decode_features(TrackKind.MUTATION, MUTATIONS_RESPONSE)
        assert isinstance(first, MutationFeature)
        assert (first.start, first.end, first.count) == (7_577_538, 7_577_539, 12)
        assert second.id == "mutation:1"

    @pytest.mark.unit
    def test_alignment_reads_and_coverage(self):
        features = decode_features(
            TrackKind.ALIGNMENT,
            [
                {"id": "r1", "start": 100, "end": 150, "cigar": "50M", "strand": "-"},
                {"type": "coverage", "start": 0, "end": 1000, "depth": 17.5},
            ],
        )
        assert isinstance(features[0], AlignmentFeature)
        assert features[0].edits[0].op == "M"
        assert isinstance(features[1], CoverageBin)
        assert features[1].depth == 17.5

    @pytest.mark.unit
    def test_alignment_explicit_edits(self):
        (read,) = decode_features(
            TrackKind.ALIGNMENT,
            [{"id": "r", "start": 100, "end": 140, "edits": [{"op": "S", "start": 100, "length": 5, "sequence": "ACGTA"}]}],
        )
        assert read.soft_clips[0].sequence == "ACGTA"

    @pytest.mark.unit
    def test_matrix_cells(self):
        (cell,) = decode_features(
            TrackKind.MATRIX, [{"id": "c", "start": 0, "end": 10, "sample_id": "S1", "feature_id": "TP53"}]
        )
        assert isinstance(cell, MatrixCell)
        assert cell.value == 1.0

    @pytest.mark.unit
    def test_empty(self):
        assert decode_features(TrackKind.SIGNAL, []) == []

    @pytest.mark.unit
    @pytest.mark.parametrize("payload", [None, "oops", {"data": []}, [1, 2]])
    def test_rejects_unexpected_shapes(self, payload):
        with pytest.raises(ValueError):
            decode_features(TrackKind.SIGNAL, payload)

    @pytest.mark.unit
    def test_missing_required_field(self):
        with pytest.raises(ValueError, match="Malformed"):
            decode_features(TrackKind.SIGNAL, [{"start": 10}])

    @pytest.mark.unit
    def test_invalid_span(self):
        with pytest.raises(ValueError):
            decode_features(TrackKind.SIGNAL, [{"start": 10, "end": 5}])


class TestHttpFeatureProvider:
    """Tests for HttpFeatureProvider."""

    @pytest.mark.unit
    def test_url(self):
        provider = HttpFeatureProvider("https://data.example.org/api/", "gene")
        assert provider.url == "https://data.example.org/api/gene"
        assert provider.kind is TrackKind.GENE

    @pytest.mark.unit
    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            HttpFeatureProvider("https://data.example.org", "heatmap")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_fetch_sends_region_params(self, httpx_mock, tp53_region):
        httpx_mock.add_response(json=GENES_RESPONSE)
        provider = HttpFeatureProvider("https://data.example.org", "gene")

        features = await provider.fetch(tp53_region, Resolution(32.2), 1, CancellationToken(1))

        assert [f.symbol for f in features] == ["TP53"]
        request = httpx_mock.get_request()
        assert request.url.path == "/gene"
        assert request.url.params["chr"] == "chr17"
        assert request.url.params["start"] == "7565097"
        assert request.url.params["end"] == "7590856"
        assert request.url.params["bp_per_pixel"] == "32.2000"
        assert "aggregate" not in request.url.params

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_fetch_aggregate_params(self, httpx_mock, tp53_region):
        httpx_mock.add_response(json=[])
        provider = HttpFeatureProvider("https://data.example.org", "signal")

        await provider.fetch(tp53_region, Resolution(32.2, aggregate=True, bin_size=33), 1, CancellationToken(1))

        request = httpx_mock.get_request()
        assert request.url.params["aggregate"] == "true"
        assert request.url.params["bin_size"] == "33"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_fetch_caches_result(self, httpx_mock, tp53_region):
        httpx_mock.add_response(json=MUTATIONS_RESPONSE)
        provider = HttpFeatureProvider("https://data.example.org", "mutation")
        resolution = Resolution(32.2)

        first = await provider.fetch(tp53_region, resolution, 1, CancellationToken(1))
        second = await provider.fetch(tp53_region, resolution, 2, CancellationToken(2))

        assert [f.id for f in first] == [f.id for f in second]
        assert len(httpx_mock.get_requests()) == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_fetch_http_error(self, httpx_mock, tp53_region):
        httpx_mock.add_response(status_code=503)
        provider = HttpFeatureProvider("https://data.example.org", "gene")

        with pytest.raises(httpx.HTTPStatusError):
            await provider.fetch(tp53_region, Resolution(32.2), 1, CancellationToken(1))

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_fetch_timeout(self, httpx_mock, tp53_region):
        httpx_mock.add_exception(httpx.ReadTimeout("Connection timed out"))
        provider = HttpFeatureProvider("https://data.example.org", "gene", timeout=1.0)

        with pytest.raises(httpx.ReadTimeout):
            await provider.fetch(tp53_region, Resolution(32.2), 1, CancellationToken(1))

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_cancelled_response_not_decoded(self, httpx_mock, tp53_region):
        httpx_mock.add_response(json={"not": "features"})
        provider = HttpFeatureProvider("https://data.example.org", "gene")
        token = CancellationToken(1)
        token.cancel()

        assert await provider.fetch(tp53_region, Resolution(32.2), 1, token) == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_sends_headers(self, httpx_mock, tp53_region):
        httpx_mock.add_response(json=[])
        provider = HttpFeatureProvider("https://data.example.org", "gene", headers={"Authorization": "Bearer t"})

        await provider.fetch(tp53_region, Resolution(32.2), 1, CancellationToken(1))

        assert httpx_mock.get_request().headers["Authorization"] == "Bearer t"
