from __future__ import annotations

import asyncio
import hashlib
import logging

from spanish_cards.config import load_config
from spanish_cards.logging_utils import setup_logging
from spanish_cards.quiz import format_elapsed
from spanish_cards.session import QuizSession, performance_rating
from spanish_cards.speech import CommandLineHost, create_speech_orchestrator
from spanish_cards.vocabulary import load_vocabulary_or_default


logger = logging.getLogger(__name__)


def _mask_secret(s: str, prefix: int = 4, suffix: int = 4) -> str:
    s = (s or "").strip()
    if not s:
        return ""
    if len(s) <= prefix + suffix:
        return "*" * len(s)
    return f"{s[:prefix]}...{s[-suffix:]}"


def _sha256_prefix(s: str, n: int = 12) -> str:
    if not s:
        return ""
    return hashlib.sha256(s.encode("utf-8")).hexdigest()[:n]


def _log_config(cfg) -> None:
    api_key = getattr(cfg, "elevenlabs_api_key", "")
    logging.getLogger("spanish_cards").info(
        "Config: vocabulary_file=%s question_count=%s preferences_file=%s "
        "speech_rate=%s http_timeout_s=%s cache=%s "
        "ELEVENLABS_API_KEY_MASKED=%s ELEVENLABS_API_KEY_SHA256_12=%s",
        getattr(cfg, "vocabulary_file", ""),
        getattr(cfg, "question_count", ""),
        getattr(cfg, "preferences_file", ""),
        getattr(cfg, "speech_rate", ""),
        getattr(cfg, "http_timeout_s", ""),
        getattr(cfg, "speech_cache_enabled", ""),
        _mask_secret(api_key),
        _sha256_prefix(api_key),
    )


async def _ask(prompt: str) -> str:
    return (await asyncio.to_thread(input, prompt)).strip()


async def _play_quiz(session: QuizSession, orchestrator) -> None:
    while session.current is not None:
        q = session.current
        print(f"\nQuestion {session.index + 1} of {session.total_questions}   score {session.score}")
        print(f"  {q.word.spanish}" + (f"   [{q.word.category}]" if session.show_category else ""))
        for n, option in enumerate(q.options, start=1):
            print(f"  {n}. {option}")

        choice = await _ask("Answer (number, s = speak, q = quit): ")
        if choice.lower() == "q":
            return
        if choice.lower() == "s":
            await orchestrator.speak_text(
                q.word.spanish,
                on_error=lambda reason: print(f"  (speech unavailable: {reason})"),
            )
            continue
        if not choice.isdigit() or not 1 <= int(choice) <= len(q.options):
            print("  Pick one of the listed numbers.")
            continue

        if session.answer(q.options[int(choice) - 1]):
            print("  Correct!")
        else:
            print(f"  Wrong, the answer is: {q.correct_answer}")
        session.advance()


async def _async_main() -> None:
    """Async entry point: loads config and vocabulary, runs one quiz."""
    setup_logging()
    cfg = load_config()
    logging.getLogger("spanish_cards").info("=== spanish-cards starting (config dump below, secrets masked) ===")
    _log_config(cfg)

    words, error = load_vocabulary_or_default(cfg.vocabulary_file)
    if error:
        print(f"Vocabulary loading issue: {error}")
        print("Using fallback vocabulary.")

    orchestrator = create_speech_orchestrator(cfg, host=CommandLineHost())
    try:
        await orchestrator.warm_up()
    except Exception:
        logger.warning("Speech warm-up failed (will retry on first request)", exc_info=True)

    try:
        hard = (await _ask("Hard mode (hide categories)? [y/N]: ")).lower() in ("y", "yes")
        session = QuizSession.start(words, cfg.question_count, hard_mode=hard)
        await _play_quiz(session, orchestrator)

        stats = session.stats()
        performance = performance_rating(stats.accuracy)
        print(
            f"\n{performance.message} ({performance.badge})\n"
            f"Score {stats.correct_answers}/{session.total_questions}  "
            f"accuracy {stats.accuracy}%  time {format_elapsed(stats.time_spent)}"
        )
    finally:
        await orchestrator.close()


def main() -> None:
    try:
        asyncio.run(_async_main())
    except (KeyboardInterrupt, EOFError):
        pass


if __name__ == "__main__":
    main()
