"""Streaming chat assistant with a hidden fact-check round."""
