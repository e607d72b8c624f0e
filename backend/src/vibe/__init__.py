"""Vibe Beta backend: streamed, multi-provider web app generation."""
