"""
Workload Profiles

The five standard profiles, in the order the suite runs them. Order matters:
the first iteration of the first profile is the only one that can observe a
cold model load.
"""

from dataclasses import dataclass

FILLER_SENTENCE = "The quick brown fox jumps over the lazy dog. "

# Rough English average used to size synthetic prompts
CHARS_PER_TOKEN = 4


def generate_filler_text(tokens: int) -> str:
    """Repeat a pangram until the text is roughly `tokens` tokens long"""
    needed = tokens * CHARS_PER_TOKEN
    repeats = needed // len(FILLER_SENTENCE) + 1
    return (FILLER_SENTENCE * repeats)[:needed]


@dataclass(frozen=True)
class ProfileConfig:
    """Configuration for one workload profile"""

    # Key of the profile in the JSON report (benchmarks.<key>)
    key: str

    # Human-readable name
    name: str

    # Approximate prompt size and output cap, in tokens
    input_tokens: int
    output_tokens: int

    # Timed iterations (no warmup)
    iterations: int

    prompt: str


ATOMIC_CHECK = ProfileConfig(
    key="atomic",
    name="Atomic Check",
    input_tokens=32,
    output_tokens=16,
    iterations=5,
    prompt="What is the capital of France? Answer in one word.",
)

CODE_GENERATION = ProfileConfig(
    key="code_gen",
    name="Code Generation",
    input_tokens=80,
    output_tokens=256,
    iterations=5,
    prompt="Write a Python function to find the second largest element in a list.",
)

STORY_GENERATION = ProfileConfig(
    key="story_gen",
    name="Story Generation",
    input_tokens=50,
    output_tokens=400,
    iterations=5,
    prompt="Write a short story about a robot who discovers nature.",
)

SUMMARIZATION = ProfileConfig(
    key="summarization",
    name="Summarization",
    input_tokens=2048,
    output_tokens=128,
    iterations=5,
    prompt=generate_filler_text(2048) + " Summarize the above.",
)

REASONING = ProfileConfig(
    key="reasoning",
    name="Reasoning",
    input_tokens=100,
    output_tokens=150,
    iterations=5,
    prompt="Solve this math problem step by step: If x=2 and y=3, what is 2x + 3y?",
)

STANDARD_PROFILES: tuple[ProfileConfig, ...] = (
    ATOMIC_CHECK,
    CODE_GENERATION,
    STORY_GENERATION,
    SUMMARIZATION,
    REASONING,
)
