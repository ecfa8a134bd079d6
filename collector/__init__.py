"""
Archive retrieval for cotwit.

Downloads the ministry's published zip archive and exposes its members as
readable byte streams. No retries and no persistence; one pass per run.
"""
