#!/usr/bin/env python3
"""
Main entry point for the interview engine.
Allows running an interview in the terminal with: python -m interview_engine
"""
import asyncio
import sys
import threading

from .config import get_config
from .interview import (
    InterviewSession, JobPosting, InterviewMode, EventType, SubmissionError
)
from .infrastructure import create_local_capabilities
from .utils import setup_logging

HELP = "Type your answer and press Enter. /speak submits what you said, /skip skips, /mute toggles audio, /end ends the call."


def _read_stdin(loop: asyncio.AbstractEventLoop, lines: "asyncio.Queue[str]") -> None:
    for line in sys.stdin:
        loop.call_soon_threadsafe(lines.put_nowait, line.rstrip("\n"))
    loop.call_soon_threadsafe(lines.put_nowait, "/end")


def _print_event(event) -> None:
    if event.event_type == EventType.SEGMENT_STARTED:
        print(f"\n🤖 {event.data['text']}")
    elif event.event_type == EventType.FALLBACK_ACTIVATED:
        print(f"🔈 Switched to recorded audio ({event.data['reason']})")
    elif event.event_type == EventType.CAPABILITY_DEGRADED:
        print(f"⚠️  Continuing without {event.data['capability']}: {event.data['reason']}")
    elif event.event_type == EventType.ANSWER_READY:
        print(f"🎤 Heard: {event.data['draft']}  (/speak to submit)")
    elif event.event_type == EventType.ERROR_OCCURRED:
        print(f"❌ {event.data['component']}: {event.data['error_message']}")


async def run_interview(session: InterviewSession) -> None:
    loop = asyncio.get_running_loop()
    lines: "asyncio.Queue[str]" = asyncio.Queue()
    threading.Thread(target=_read_stdin, args=(loop, lines), daemon=True).start()

    session.event_bus.subscribe_all(_print_event)
    async with session:
        print(HELP)
        finished = asyncio.ensure_future(session.wait_finished())
        while not finished.done():
            reader = asyncio.ensure_future(lines.get())
            done, _ = await asyncio.wait({reader, finished}, return_when=asyncio.FIRST_COMPLETED)
            if reader not in done:
                reader.cancel()
                break

            line = reader.result().strip()
            try:
                if line == "/end":
                    await session.end_interview()
                elif line == "/skip":
                    session.force_advance()
                elif line == "/speak":
                    session.submit_spoken_answer()
                elif line == "/mute":
                    print("🔊 Audio on" if session.toggle_audio() else "🔇 Audio muted")
                elif line:
                    session.submit_answer(line)
            except SubmissionError as e:
                print(f"❌ {e}")

    summary = session.summary
    print("=" * 50)
    if summary is None:
        print("Interview closed without a result")
        return
    print(f"✅ Interview {'completed' if summary.completed else 'ended'} - score {summary.final_score}")
    print(f"   {'Submitted' if session.submitted else 'NOT submitted'} for application {summary.application_id}")


def main():
    """Command-line interface for running an interview."""

    # Load configuration from environment
    try:
        config = get_config()
    except ValueError as e:
        print(f"❌ Configuration Error: {e}")
        sys.exit(1)

    muted = "--text" in sys.argv or "--no-tts" in sys.argv or not config.enable_tts
    job_title, company, application_id = "Software Engineer", "Acme", "local"
    for arg in sys.argv[1:]:
        if arg.startswith("--questions="):
            try:
                config.question_count = max(0, int(arg.split("=", 1)[1]))
            except ValueError:
                print("❌ Invalid question count. Use --questions=1 to --questions=12")
                sys.exit(1)
        elif arg.startswith("--mode="):
            config.interview_mode = InterviewMode.parse(arg.split("=", 1)[1]).value
        elif arg.startswith("--candidate="):
            config.candidate_name = arg.split("=", 1)[1]
        elif arg.startswith("--job-title="):
            job_title = arg.split("=", 1)[1]
        elif arg.startswith("--company="):
            company = arg.split("=", 1)[1]
        elif arg.startswith("--application="):
            application_id = arg.split("=", 1)[1]

    log_file = setup_logging(config.log_file, config.log_level)

    if muted:
        print("📝 Text Mode: Questions will be displayed as text only")
    else:
        print("🔊 Speech Mode: The interviewer will speak questions aloud")
        print("   (Use --text or --no-tts to disable speech)")
    print(f"🎥 Interview mode: {config.interview_mode}")
    print(f"📝 Detailed logs: {log_file}")

    job = JobPosting(id=application_id, title=job_title, company_name=company,
                     interview_mode=config.interview_mode)
    session = InterviewSession(
        job,
        application_id,
        candidate_name=config.candidate_name,
        settings=config.engine_settings(),
        clips_dir=config.clips_dir,
        question_count=config.question_count,
        muted=muted,
        voice_hint=config.tts_voice,
        **create_local_capabilities(config),
    )

    try:
        asyncio.run(run_interview(session))
    except KeyboardInterrupt:
        print("\n👋 Interview interrupted")


if __name__ == "__main__":
    main()
