"""Infrastructure: durable storage and the local LLM summarizer."""
