"""HTTP endpoint for termbridge.

A FastAPI server that maps one POST per terminal tool, and an httpx
client that the CLI uses to talk to it.
"""
