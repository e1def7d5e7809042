"""
Speech-to-text app built with FastAPI, exposing
- an audio upload endpoint that transcribes the file with Deepgram,
- and history endpoints listing or clearing the stored transcripts.
"""

__version__ = "0.2.0"
