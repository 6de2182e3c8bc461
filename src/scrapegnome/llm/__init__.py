"""Language-model helpers: Ollama transport, completion service and prompts."""
