"""Uploads domain - session-side upload orchestration.

Modules:
- api_client: HTTP gateway to the backend
- notifications: user-visible messages
- workflow: file -> archive -> persisted track
- backfill: durations for tracks uploaded without one
"""
