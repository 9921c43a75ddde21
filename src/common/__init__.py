"""Shared configuration, logging, error handling, schemas and LLM construction."""
