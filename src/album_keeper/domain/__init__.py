"""Domain layer - albums, tracks, uploads and playback.

Subpackages:
- archive: Internet Archive signing, transport, probes
- library: SQLite persistence (server side)
- tracklist: overlay, ordered list controller, readiness poller
- playback: the playback cursor
- uploads: session-side upload orchestration
"""
