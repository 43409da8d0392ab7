from __future__ import annotations

__title__ = "mutumwa"
__version__ = "0.1.0"
__description__ = "Streaming reply client for webhook-backed multilingual chat assistants."
