"""Configuration for genoview, loaded from environment variables."""

import os
from dataclasses import dataclass

from .constants import (
    ALIGNMENT_COVERAGE_THRESHOLD_BP,
    DEFAULT_CACHE_MAX_SIZE,
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_FETCH_TIMEOUT_SECONDS,
    DEFAULT_GENOME,
    DEFAULT_HOST,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_READS,
    DEFAULT_MIN_SPAN,
    DEFAULT_PIXEL_WIDTH,
    DEFAULT_PORT,
    DEFAULT_REGION,
    DEFAULT_TRANSPORT,
    GENOMES,
    MUTATION_BASE_RADIUS,
    SIGNAL_MIN_BIN_PX,
    STRAND_ARROW_MAX_BP_PER_PIXEL,
)

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class GenoviewConfig:
    """Viewer and server configuration loaded from environment variables."""

    # Viewer settings
    genome: str = DEFAULT_GENOME
    initial_region: str = DEFAULT_REGION
    pixel_width: int = DEFAULT_PIXEL_WIDTH
    min_span: int = DEFAULT_MIN_SPAN
    strict: bool = False  # raise OutOfRange instead of clamping

    # Level-of-detail settings
    alignment_coverage_threshold: int = ALIGNMENT_COVERAGE_THRESHOLD_BP
    signal_min_bin_px: float = SIGNAL_MIN_BIN_PX
    strand_arrow_max_bp_per_pixel: float = STRAND_ARROW_MAX_BP_PER_PIXEL
    mutation_base_radius: float = MUTATION_BASE_RADIUS

    # Provider settings
    provider_url: str | None = None
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT_SECONDS
    http_timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS
    cache_ttl: int = DEFAULT_CACHE_TTL_SECONDS
    cache_max_size: int = DEFAULT_CACHE_MAX_SIZE
    max_reads: int = DEFAULT_MAX_READS
    bam_path: str | None = None
    reference: str | None = None

    # Transport settings
    transport: str = DEFAULT_TRANSPORT
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = DEFAULT_LOG_LEVEL

    def __post_init__(self) -> None:
        """Validate config values."""
        if self.genome not in GENOMES:
            raise ValueError(f"genome must be one of {tuple(GENOMES)}, got '{self.genome}'")

        if self.pixel_width < 1:
            raise ValueError(f"pixel_width must be at least 1, got {self.pixel_width}")

        if self.min_span < 1:
            raise ValueError(f"min_span must be at least 1, got {self.min_span}")

        if self.alignment_coverage_threshold < 1:
            raise ValueError(
                "alignment_coverage_threshold must be at least 1, "
                f"got {self.alignment_coverage_threshold}"
            )

        if self.signal_min_bin_px <= 0:
            raise ValueError(f"signal_min_bin_px must be positive, got {self.signal_min_bin_px}")

        if self.mutation_base_radius <= 0:
            raise ValueError(
                f"mutation_base_radius must be positive, got {self.mutation_base_radius}"
            )

        if self.fetch_timeout <= 0:
            raise ValueError(f"fetch_timeout must be positive, got {self.fetch_timeout}")

        if self.cache_ttl < 0:
            raise ValueError(f"cache_ttl must be non-negative, got {self.cache_ttl}")

        if self.cache_max_size < 1:
            raise ValueError(f"cache_max_size must be at least 1, got {self.cache_max_size}")

        if self.max_reads < 1:
            raise ValueError(f"max_reads must be at least 1, got {self.max_reads}")

        valid_transports = ("stdio", "sse", "streamable-http")
        if self.transport not in valid_transports:
            raise ValueError(f"transport must be one of {valid_transports}, got '{self.transport}'")

        if not 1 <= self.port <= 65535:
            raise ValueError(f"port must be between 1 and 65535, got {self.port}")

        self.log_level = self.log_level.upper()
        if self.log_level not in VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {VALID_LOG_LEVELS}, got '{self.log_level}'")

    @classmethod
    def from_env(cls) -> "GenoviewConfig":
        """Create config from environment variables."""
        env = os.environ

        return cls(
            genome=env.get("GENOVIEW_GENOME", DEFAULT_GENOME),
            initial_region=env.get("GENOVIEW_REGION", DEFAULT_REGION),
            pixel_width=int(env.get("GENOVIEW_PIXEL_WIDTH", str(DEFAULT_PIXEL_WIDTH))),
            min_span=int(env.get("GENOVIEW_MIN_SPAN", str(DEFAULT_MIN_SPAN))),
            strict=env.get("GENOVIEW_STRICT", "false").lower() == "true",
            alignment_coverage_threshold=int(
                env.get("GENOVIEW_ALIGNMENT_COVERAGE_THRESHOLD", str(ALIGNMENT_COVERAGE_THRESHOLD_BP))
            ),
            signal_min_bin_px=float(env.get("GENOVIEW_SIGNAL_MIN_BIN_PX", str(SIGNAL_MIN_BIN_PX))),
            strand_arrow_max_bp_per_pixel=float(
                env.get("GENOVIEW_STRAND_ARROW_MAX_BPP", str(STRAND_ARROW_MAX_BP_PER_PIXEL))
            ),
            mutation_base_radius=float(
                env.get("GENOVIEW_MUTATION_BASE_RADIUS", str(MUTATION_BASE_RADIUS))
            ),
            provider_url=env.get("GENOVIEW_PROVIDER_URL"),
            fetch_timeout=float(
                env.get("GENOVIEW_FETCH_TIMEOUT", str(DEFAULT_FETCH_TIMEOUT_SECONDS))
            ),
            http_timeout=float(env.get("GENOVIEW_HTTP_TIMEOUT", str(DEFAULT_HTTP_TIMEOUT_SECONDS))),
            cache_ttl=int(env.get("GENOVIEW_CACHE_TTL", str(DEFAULT_CACHE_TTL_SECONDS))),
            cache_max_size=int(env.get("GENOVIEW_CACHE_MAX_SIZE", str(DEFAULT_CACHE_MAX_SIZE))),
            max_reads=int(env.get("GENOVIEW_MAX_READS", str(DEFAULT_MAX_READS))),
            bam_path=env.get("GENOVIEW_BAM"),
            reference=env.get("GENOVIEW_REFERENCE"),
            transport=env.get("GENOVIEW_TRANSPORT", DEFAULT_TRANSPORT),
            host=env.get("GENOVIEW_HOST", DEFAULT_HOST),
            port=int(env.get("GENOVIEW_PORT", str(DEFAULT_PORT))),
            log_level=env.get("GENOVIEW_LOG_LEVEL", DEFAULT_LOG_LEVEL),
        )
