"""
Interview Engine Configuration
==============================

This file contains ALL configuration for the interview engine.
- User settings at the top (things users might want to change)
- Internal constants at the bottom (timing and technical defaults)
"""
import os
from dataclasses import dataclass
from typing import Optional


# =============================================================================
# USER SETTINGS - Edit these to customize the interview
# =============================================================================

# REQUIRED: Where finished interviews are submitted
RESULTS_API_URL = "https://your-hiring-platform.example/api"  # Change this!
RESULTS_API_TOKEN = None  # Optional: bearer token for the results API

# Interview settings
QUESTION_COUNT = 12
INTERVIEW_MODE = "full"
CANDIDATE_NAME = "there"
WORKDIR = "./_interviews"

# Speech settings
ENABLE_TTS = True
TTS_VOICE = "en-US-Neural2-F"
SPEAKER_VOLUME = 0.6
LANGUAGE_CODE = "en-US"
CLIPS_DIR = "./audio"

# Logging
LOG_FILE = "./_interviews/interview.log"
LOG_LEVEL = "INFO"


# =============================================================================
# INTERNAL CONSTANTS - Don't change these unless you know what you're doing
# =============================================================================

# Turn taking
DEBOUNCE_SECONDS = 1.5
RESUME_GRACE_SECONDS = 0.3
INTER_SEGMENT_PAUSE_SECONDS = 0.5
ANSWER_READY_CHARS = 20

# Speech output safety windows
START_TIMEOUT_FLOOR = 1.0
START_TIMEOUT_PER_CHAR = 0.02
SAFETY_SECONDS_PER_CHAR = 0.1
SAFETY_FLOOR_SECONDS = 2.0
TEXT_ONLY_HOLD_SECONDS = 2.0

# Speech input
MAX_RECOGNITION_RESTARTS = 3
RESTART_DELAY = 0.25

# Audio hardware
MIC_SAMPLE_RATE = 16000
MIC_CHUNK_MS = 100
MIC_QUEUE_CHUNKS = 50  # at most 5 s of unread audio is kept
SPEAKER_DEVICE = None
SPEAKER_BUFFER_SIZE = 1600

# Camera / screen
CAMERA_INDEX = 0
SCREEN_MONITOR = 1

# Results API
RESULTS_API_TIMEOUT = 30


# =============================================================================
# ENGINE SETTINGS
# =============================================================================

@dataclass
class EngineSettings:
    """Timing parameters for the turn-taking core."""
    debounce_seconds: float = DEBOUNCE_SECONDS
    resume_grace_seconds: float = RESUME_GRACE_SECONDS
    inter_segment_pause_seconds: float = INTER_SEGMENT_PAUSE_SECONDS
    answer_ready_chars: int = ANSWER_READY_CHARS
    start_timeout_floor: float = START_TIMEOUT_FLOOR
    start_timeout_per_char: float = START_TIMEOUT_PER_CHAR
    safety_seconds_per_char: float = SAFETY_SECONDS_PER_CHAR
    safety_floor_seconds: float = SAFETY_FLOOR_SECONDS
    text_only_hold_seconds: float = TEXT_ONLY_HOLD_SECONDS
    max_recognition_restarts: int = MAX_RECOGNITION_RESTARTS
    restart_delay: float = RESTART_DELAY

    def start_timeout(self, text: str) -> float:
        """Window a synthesis engine has to report `started` for ``text``."""
        return max(self.start_timeout_floor, self.start_timeout_per_char * len(text))

    def safety_timeout(self, text: str) -> float:
        """Upper bound on how long ``text`` may keep the interviewer speaking."""
        return max(self.safety_floor_seconds, self.safety_seconds_per_char * len(text))


# =============================================================================
# MAIN CONFIG OBJECT
# =============================================================================

@dataclass
class Config:
    """Main configuration object."""
    results_api_url: str
    results_api_token: Optional[str] = None
    results_api_timeout: int = RESULTS_API_TIMEOUT
    question_count: int = QUESTION_COUNT
    interview_mode: str = INTERVIEW_MODE
    candidate_name: str = CANDIDATE_NAME
    workdir: str = WORKDIR
    enable_tts: bool = ENABLE_TTS
    tts_voice: str = TTS_VOICE
    speaker_volume: float = SPEAKER_VOLUME
    language_code: str = LANGUAGE_CODE
    clips_dir: str = CLIPS_DIR
    mic_sample_rate: int = MIC_SAMPLE_RATE
    camera_index: int = CAMERA_INDEX
    screen_monitor: int = SCREEN_MONITOR
    log_file: str = LOG_FILE
    log_level: str = LOG_LEVEL

    def engine_settings(self) -> EngineSettings:
        """Get the turn-taking timings."""
        return EngineSettings()


def get_config() -> Config:
    """Load configuration."""
    results_url = os.getenv("INTERVIEW_RESULTS_URL") or RESULTS_API_URL
    token = os.getenv("INTERVIEW_RESULTS_TOKEN") or RESULTS_API_TOKEN

    if not results_url or "example" in results_url:
        raise ValueError("Please set INTERVIEW_RESULTS_URL in config.py or as environment variable")

    return Config(
        results_api_url=results_url.rstrip("/"),
        results_api_token=token,
        clips_dir=os.getenv("INTERVIEW_CLIPS_DIR") or CLIPS_DIR,
        language_code=os.getenv("INTERVIEW_LANGUAGE") or LANGUAGE_CODE,
    )
