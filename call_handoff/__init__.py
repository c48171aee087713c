"""LLM voice agent with human handoff."""
