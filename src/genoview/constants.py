"""Shared constants for genoview runtime defaults and thresholds.

This module is the single source of truth for default values that are consumed
across configuration loading, track rendering, and the MCP server.
"""

from __future__ import annotations

# Networking defaults
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000
DEFAULT_TRANSPORT = "stdio"
DEFAULT_LOG_LEVEL = "WARNING"

# Viewer defaults
DEFAULT_GENOME = "hg38"
DEFAULT_PIXEL_WIDTH = 800
DEFAULT_MIN_SPAN = 1
DEFAULT_REGION = "chr17:7565097-7590856"

# Level-of-detail thresholds
ALIGNMENT_COVERAGE_THRESHOLD_BP = 100_000  # span beyond which reads collapse to coverage
SIGNAL_MIN_BIN_PX = 1.0
STRAND_ARROW_MAX_BP_PER_PIXEL = 50.0
GENE_LABEL_MIN_PX = 30.0

# Glyph sizes
MUTATION_BASE_RADIUS = 3.0
READ_HEIGHT = 8
READ_GAP = 2
MATRIX_ROW_HEIGHT = 10
TRACK_LABEL_HEIGHT = 15

# Provider defaults
DEFAULT_FETCH_TIMEOUT_SECONDS = 30.0
DEFAULT_HTTP_TIMEOUT_SECONDS = 30.0
DEFAULT_CACHE_TTL_SECONDS = 3_600
DEFAULT_CACHE_MAX_SIZE = 256
DEFAULT_MAX_READS = 10_000

# Event bus
EVENT_HISTORY_SIZE = 100
EVENT_SCHEMA_VERSION = 1

TOPIC_REGION_CHANGED = "region-changed"
TOPIC_SELECTION_CHANGED = "selection-changed"
TOPIC_FILTERS_CHANGED = "filters-changed"
TOPIC_VIEW_SYNC = "view-sync"
TOPIC_TRACK_LOADED = "track-loaded"

# Chromosome lengths per assembly
CHROMOSOME_SIZES_HG38: dict[str, int] = {
    "chr1": 248_956_422,
    "chr2": 242_193_529,
    "chr3": 198_295_559,
    "chr4": 190_214_555,
    "chr5": 181_538_259,
    "chr6": 170_805_979,
    "chr7": 159_345_973,
    "chr8": 145_138_636,
    "chr9": 138_394_717,
    "chr10": 133_797_422,
    "chr11": 135_086_622,
    "chr12": 133_275_309,
    "chr13": 114_364_328,
    "chr14": 107_043_718,
    "chr15": 101_991_189,
    "chr16": 90_338_345,
    "chr17": 83_257_441,
    "chr18": 80_373_285,
    "chr19": 58_617_616,
    "chr20": 64_444_167,
    "chr21": 46_709_983,
    "chr22": 50_818_468,
    "chrX": 156_040_895,
    "chrY": 57_227_415,
    "chrM": 16_569,
}

CHROMOSOME_SIZES_HG19: dict[str, int] = {
    "chr1": 249_250_621,
    "chr2": 243_199_373,
    "chr3": 198_022_430,
    "chr4": 191_154_276,
    "chr5": 180_915_260,
    "chr6": 171_115_067,
    "chr7": 159_138_663,
    "chr8": 146_364_022,
    "chr9": 141_213_431,
    "chr10": 135_534_747,
    "chr11": 135_006_516,
    "chr12": 133_851_895,
    "chr13": 115_169_878,
    "chr14": 107_349_540,
    "chr15": 102_531_392,
    "chr16": 90_354_753,
    "chr17": 81_195_210,
    "chr18": 78_077_248,
    "chr19": 59_128_983,
    "chr20": 63_025_520,
    "chr21": 48_129_895,
    "chr22": 51_304_566,
    "chrX": 155_270_560,
    "chrY": 59_373_566,
    "chrM": 16_571,
}

CHROMOSOME_SIZES_MM10: dict[str, int] = {
    "chr1": 195_471_971,
    "chr2": 182_113_224,
    "chr3": 160_039_680,
    "chr4": 156_508_116,
    "chr5": 151_834_684,
    "chr6": 149_736_546,
    "chr7": 145_441_459,
    "chr8": 129_401_213,
    "chr9": 124_595_110,
    "chr10": 130_694_993,
    "chr11": 122_082_543,
    "chr12": 120_129_022,
    "chr13": 120_421_639,
    "chr14": 124_902_244,
    "chr15": 104_043_685,
    "chr16": 98_207_768,
    "chr17": 94_987_271,
    "chr18": 90_702_639,
    "chr19": 61_431_566,
    "chrX": 171_031_299,
    "chrY": 91_744_698,
    "chrM": 16_299,
}

GENOMES: dict[str, dict[str, int]] = {
    "hg38": CHROMOSOME_SIZES_HG38,
    "hg19": CHROMOSOME_SIZES_HG19,
    "mm10": CHROMOSOME_SIZES_MM10,
}

# Consequence colors for mutation glyphs
MUTATION_COLORS: dict[str, str] = {
    "missense": "#3498db",
    "nonsense": "#e74c3c",
    "frameshift": "#9b59b6",
    "inframe_deletion": "#f39c12",
    "inframe_insertion": "#1abc9c",
    "splice": "#e67e22",
    "synonymous": "#95a5a6",
    "silent": "#95a5a6",
    "other": "#7f8c8d",
}

# Edit-operation styling for alignment reads
EDIT_OP_COLORS: dict[str, str] = {
    "S": "#ff6f00",  # soft clip
    "I": "#7b1fa2",  # insertion
    "D": "#212121",  # deletion
    "N": "#bdbdbd",  # skipped region (intron)
    "X": "#d32f2f",  # mismatch
}

STRAND_COLORS = {"+": "#3498db", "-": "#e74c3c"}
