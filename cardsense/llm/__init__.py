"""Optional LLM layer: Ollama client, prompts, and reply validation."""
