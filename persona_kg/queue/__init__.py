"""Request queue: the only path to the generative service."""

from persona_kg.queue.request_queue import RequestQueue, summarize_response

__all__ = ["RequestQueue", "summarize_response"]
