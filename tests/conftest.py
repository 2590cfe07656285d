"""Shared test fixtures for genoview tests."""

import asyncio

import pytest

from genoview.config import GenoviewConfig
from genoview.core.coords import CoordinateSpace
from genoview.core.features import Exon, GeneFeature, MatrixCell, MutationFeature
from genoview.core.region import Genome, GenomicRegion
from genoview.state.bus import EventBus
from genoview.state.store import CohortStore

TP53_REGION = GenomicRegion("chr17", 7_565_097, 7_590_856)


class ControlledProvider:
    """Provider whose responses are released by hand, in any order."""

    def __init__(self, responses=None):
        self.responses = responses or {}
        self.gates: dict[int, asyncio.Event] = {}
        self.calls: list[int] = []

    def _gate(self, request_id):
        return self.gates.setdefault(request_id, asyncio.Event())

    def release(self, request_id):
        self._gate(request_id).set()

    async def fetch(self, region, resolution, request_id, token):
        self.calls.append(request_id)
        await self._gate(request_id).wait()
        response = self.responses[request_id]
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def hg38():
    return Genome.named("hg38")


@pytest.fixture
def tp53_region():
    return TP53_REGION


@pytest.fixture
def space(hg38):
    """800px space over the TP53 locus."""
    return CoordinateSpace(TP53_REGION, 800, hg38)


@pytest.fixture
def config():
    return GenoviewConfig()


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def store(bus, hg38):
    return CohortStore(bus, hg38, TP53_REGION)


@pytest.fixture
def tp53_gene():
    return GeneFeature(
        id="TP53",
        start=7_565_097,
        end=7_590_856,
        symbol="TP53",
        strand="-",
        exons=[
            Exon(7_565_097, 7_565_332, "utr3"),
            Exon(7_569_000, 7_569_200),
            Exon(7_577_000, 7_577_600),
            Exon(7_590_600, 7_590_856, "utr5"),
        ],
    )


@pytest.fixture
def mutations():
    """TP53 hotspot mutations across four samples."""
    return [
        MutationFeature.at("m1", 7_577_538, sample_id="S001", consequence="missense", gene="TP53", count=12),
        MutationFeature.at("m2", 7_577_120, sample_id="S002", consequence="missense", gene="TP53", count=4),
        MutationFeature.at("m3", 7_578_406, sample_id="S003", consequence="nonsense", gene="TP53"),
        MutationFeature.at("m4", 7_579_312, sample_id="S004", consequence="splice", gene="TP53", count=2),
        MutationFeature.at("m5", 7_574_003, sample_id="S001", consequence="frameshift", gene="TP53"),
    ]


@pytest.fixture
def matrix_cells():
    return [
        MatrixCell("c1", 7_565_097, 7_590_856, sample_id="S001", feature_id="TP53", category="missense"),
        MatrixCell("c2", 7_565_097, 7_590_856, sample_id="S003", feature_id="TP53", category="nonsense"),
        MatrixCell("c3", 7_571_720, 7_573_008, sample_id="S002", feature_id="ATP1B2", value=0.4),
    ]


@pytest.fixture
def controlled_provider():
    return ControlledProvider()
