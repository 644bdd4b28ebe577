"""Local media capture (microphone, camera, screen)."""

from .capture import LocalMediaCapture, MicrophoneStream, CameraStream, ScreenStream

__all__ = ["LocalMediaCapture", "MicrophoneStream", "CameraStream", "ScreenStream"]
