"""Report schemas

Field names and nesting of these models are the JSON contract of
``rigrank run``. Durations are milliseconds, speeds are tokens/sec.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class CPUInfo(BaseModel):
    """CPU information schema"""

    model: str = ""
    cores_physical: int = 0
    cores_logical: int = 0
    frequency_max_mhz: float = 0


class GPUInfo(BaseModel):
    """GPU information schema"""

    model: str = ""
    vram_total_mb: int = 0
    pcie_gen: str = ""  # "gen3", "gen4", ... or empty if unknown
    pcie_lanes: int = 0  # 0 if unknown


class RAMInfo(BaseModel):
    """RAM information schema"""

    total_mb: int = 0
    type: str = "Unknown"  # "DDR4", "LPDDR5", ...
    speed_mts: int = 0  # MT/s


class SystemInfo(BaseModel):
    """Hardware telemetry of the benchmarked host"""

    arch: str = ""
    cpu: CPUInfo = Field(default_factory=CPUInfo)
    gpu: GPUInfo = Field(default_factory=GPUInfo)
    ram: RAMInfo = Field(default_factory=RAMInfo)


class StatsMetric(BaseModel):
    """Aggregate of one metric over a profile's iterations"""

    mean: float
    median: float
    p99: float


class Stats(BaseModel):
    """Per-profile metrics; a metric with no samples is None and omitted from JSON"""

    ttft_ms: StatsMetric | None = None
    gen_tps: StatsMetric | None = None
    prompt_tps: StatsMetric | None = None
    total_duration_ms: StatsMetric | None = None
    load_duration_ms: StatsMetric | None = None


class ProfileTokens(BaseModel):
    """Token targets of a workload profile"""

    input_tokens: int
    output_tokens: int


class ProfileStats(BaseModel):
    """Result of one workload profile"""

    description: str
    config: ProfileTokens
    stats: Stats = Field(default_factory=Stats)


class Benchmarks(BaseModel):
    """The five standard profiles, keyed by profile"""

    atomic: ProfileStats | None = None
    code_gen: ProfileStats | None = None
    story_gen: ProfileStats | None = None
    summarization: ProfileStats | None = None
    reasoning: ProfileStats | None = None


class ModelMetadata(BaseModel):
    """Benchmarked model"""

    name: str
    quantization: str = ""
    size_mb: int = 0


class BenchmarkResult(BaseModel):
    """Inference results of a full suite run"""

    model_config = ConfigDict(protected_namespaces=())

    metrics_version: str = "1.0"
    model_metadata: ModelMetadata
    initial_load_ms: float = 0.0  # load duration of the first iteration
    steady_state_load_ms: float = 0.0  # mean load duration of later iterations
    benchmarks: Benchmarks = Field(default_factory=Benchmarks)


class Rating(str, Enum):
    """Qualitative suitability rating"""

    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    POOR = "POOR"


class Suitability(BaseModel):
    """Rating of one use case"""

    rating: Rating
    reason: str


class SuitabilityReport(BaseModel):
    """Ratings for each use case and the overall verdict"""

    quick_qa: Suitability
    coding: Suitability
    writing: Suitability
    summarization: Suitability
    data_analysis: Suitability
    overall_verdict: str

    def ratings(self) -> list[Suitability]:
        """Use-case ratings in report order"""
        return [
            self.quick_qa,
            self.coding,
            self.writing,
            self.summarization,
            self.data_analysis,
        ]


class FullReport(BaseModel):
    """Top-level JSON document"""

    system_info: SystemInfo
    inference_results: BenchmarkResult
    use_case_suitability: SuitabilityReport

    def to_json(self) -> str:
        """Serialize with absent metrics omitted"""
        return self.model_dump_json(indent=2, exclude_none=True)
