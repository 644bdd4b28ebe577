"""
Interview Engine: turn-taking core for AI-led job interviews.

Drives a synthetic interviewer through a scripted question sequence while
arbitrating between synthesized speech and the candidate's live speech or
typed answers.
"""

__version__ = "1.0.0"

# Main entry points
from .interview.orchestrator import InterviewSession
from .interview.models import JobPosting, SessionSummary, TranscriptEntry

__all__ = ["InterviewSession", "JobPosting", "SessionSummary", "TranscriptEntry"]
