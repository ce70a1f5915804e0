"""
Messaging Domain

Studio inbox: threads between the studio and its clients, group threads
between profiles, read receipts and the thread status workflow.

Components (one per module):
- participants: who may see a thread
- threads: thread rows, flags and booking-request threads
- message_log: append-only messages plus post-append hooks
- read_state: unread counts and mark-as-read
- workflow: status transition table
- inbox: per-viewer inbox projection
- service / router: request-scoped orchestration and HTTP endpoints
"""

from .router import router

__all__ = ["router"]
