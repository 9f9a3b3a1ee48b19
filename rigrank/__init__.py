"""RigRank - local LLM benchmark tool for Ollama."""

__version__ = "0.1.0"
