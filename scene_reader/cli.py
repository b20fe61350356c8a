"""CLI interface: browse scenes and voices, speak sentences, interactive session."""

import argparse
import logging
import shlex
import sys

from scene_reader.catalog import all_tags, filter_by_tag, load_scenes
from scene_reader.constants import DEFAULT_LANGUAGE, VERSION
from scene_reader.edge_engine import EdgeSpeechEngine
from scene_reader.errors import InvalidSettings
from scene_reader.events import EventQueue
from scene_reader.models import SessionSnapshot
from scene_reader.session import SessionController

STOP_ACK_TIMEOUT = 5.0  # seconds to wait for on_stopped after Ctrl-C

REPL_HELP = """Commands:
  speak            speak the current sentence
  stop             stop speaking
  next / prev      move to the next / previous sentence
  scene <id>       select a scene (starts at its first sentence)
  lang <code>      select a language (voice resets to the first one available)
  voice <id>       select a voice for the current language
  pitch <float>    set pitch (0.5 - 2.0)
  rate <float>     set rate (0.1 - 2.0)
  status           show the current session
  wait             wait until speaking finishes
  help             show this help
  quit             leave"""


def _load_catalog(args):
    """Load scenes from --scenes or the built-in catalog; exit on bad input."""
    try:
        return load_scenes(args.scenes)
    except FileNotFoundError:
        print(f"Error: Scene file not found: {args.scenes}", file=sys.stderr)
        raise SystemExit(1)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1)


def _build_session(args) -> tuple[SessionController, EventQueue]:
    """Create the event queue, engine and controller, and initialize the engine."""
    scenes = _load_catalog(args)
    events = EventQueue()
    engine = EdgeSpeechEngine(dispatch=events.post)
    controller = SessionController(engine, scenes)
    if not controller.initialize():
        print(f"Warning: {controller.error}", file=sys.stderr)
    return controller, events


def _format_status(snapshot: SessionSnapshot) -> str:
    s = snapshot.settings
    lines = [
        f"Scene:    {s.selected_scene}  (sentence {s.selected_sentence_index + 1})",
        f"Language: {s.language}",
        f"Voice:    {s.voice or '(engine default)'}",
        f"Pitch:    {s.pitch:.1f}   Rate: {s.rate:.1f}",
        f"State:    {'speaking' if snapshot.is_speaking else 'idle'}",
        f"Text:     {snapshot.current_text}",
    ]
    if snapshot.error is not None:
        lines.append(f"Error:    {snapshot.error}")
    return "\n".join(lines)


def _wait_until_idle(controller: SessionController, events: EventQueue) -> None:
    """Pump engine callbacks until idle. Ctrl-C requests a stop and waits for it."""
    try:
        events.run_until(lambda: not controller.is_speaking)
    except KeyboardInterrupt:
        print("\nStopping...")
        controller.stop()
        if not events.run_until(lambda: not controller.is_speaking, timeout=STOP_ACK_TIMEOUT):
            print("Warning: engine did not confirm the stop.", file=sys.stderr)


def cmd_scenes(args):
    """List scenes, optionally filtered by tag."""
    scenes = _load_catalog(args)
    if args.tag and args.tag not in all_tags(scenes):
        print(f"No scenes tagged '{args.tag}'. Tags: {', '.join(all_tags(scenes))}")
        return
    print("Scenes:")
    for scene in filter_by_tag(scenes, args.tag):
        count = len(scene.sentences.get(args.language, ()))
        tags = f" [{', '.join(sorted(scene.tags))}]" if scene.tags else ""
        print(f"  {scene.id:<16} {scene.title} ({count} sentences){tags}")
        print(f"  {'':<16} {scene.description}")


def cmd_languages(args):
    """List scene languages and how many engine voices each has."""
    controller, _ = _build_session(args)
    snapshot = controller.snapshot()
    print("Languages:")
    for lang in snapshot.available_languages:
        voices = len(controller.voices_for_language(lang.code))
        print(f"  {lang.flag} {lang.code:<8} {lang.name} ({voices} voices)")
    print(f"Engine: {snapshot.engine_version}, {len(snapshot.available_engine_languages)} languages")


def cmd_voices(args):
    """List available engine voices."""
    controller, _ = _build_session(args)
    voices = list(controller.snapshot().available_voices)
    if args.language:
        voices = [v for v in voices if v.language == args.language]
    if args.filter:
        needle = args.filter.lower()
        voices = [v for v in voices if needle in v.identifier.lower() or needle in v.name.lower()]
    if not voices:
        print("No matching voices found.")
        return
    print("Available voices:")
    for v in voices:
        gender = f", {v.gender}" if v.gender else ""
        print(f"  {v.identifier:<32} {v.language}{gender}")


def cmd_say(args):
    """Speak one sentence and wait until it finishes."""
    controller, events = _build_session(args)

    partial = {"language": args.language}
    if args.voice:
        partial["voice"] = args.voice
    if args.scene:
        partial["selected_scene"] = args.scene
    if args.index is not None:
        partial["selected_sentence_index"] = args.index
    if args.pitch is not None:
        partial["pitch"] = args.pitch
    if args.rate is not None:
        partial["rate"] = args.rate
    try:
        controller.update_settings(**partial)
    except InvalidSettings as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1)

    print(controller.current_text)
    if not controller.speak():
        print(f"Error: {controller.error}", file=sys.stderr)
        raise SystemExit(1)

    _wait_until_idle(controller, events)
    if controller.error is not None:
        print(f"Error: {controller.error}", file=sys.stderr)
        raise SystemExit(1)


def _repl_command(controller: SessionController, events: EventQueue, line: str) -> bool:
    """Run one REPL line. Returns False when the session should end."""
    parts = shlex.split(line)
    if not parts:
        return True
    command, values = parts[0].lower(), parts[1:]

    if command in ("quit", "exit"):
        return False
    if command == "help":
        print(REPL_HELP)
    elif command == "status":
        print(_format_status(controller.snapshot()))
    elif command == "speak":
        if controller.speak():
            print(f"Speaking: {controller.current_text}")
        elif controller.is_speaking:
            print("Already speaking. Use 'stop' first.")
    elif command == "stop":
        controller.stop()
    elif command == "wait":
        _wait_until_idle(controller, events)
    elif command == "next":
        controller.next_sentence()
        print(controller.current_text)
    elif command == "prev":
        controller.previous_sentence()
        print(controller.current_text)
    elif command in ("scene", "lang", "voice", "pitch", "rate"):
        if not values:
            print(f"Error: '{command}' requires a value", file=sys.stderr)
            return True
        try:
            if command == "scene":
                controller.select_scene(values[0])
            elif command == "lang":
                controller.update_settings(language=values[0])
            elif command == "voice":
                controller.update_settings(voice=values[0])
            else:
                controller.update_settings(**{command: float(values[0])})
        except InvalidSettings as e:
            print(f"Error: {e}", file=sys.stderr)
            return True
        except ValueError:
            print(f"Error: Invalid value: {values[0]}", file=sys.stderr)
            return True
        print(_format_status(controller.snapshot()))
    else:
        print(f"Unknown command: {command} (try 'help')")

    events.drain()
    if controller.error is not None:
        print(f"Error: {controller.error}", file=sys.stderr)
    return True


def cmd_repl(args):
    """Interactive session."""
    controller, events = _build_session(args)
    if args.language != DEFAULT_LANGUAGE:
        try:
            controller.update_settings(language=args.language)
        except InvalidSettings as e:
            print(f"Error: {e}", file=sys.stderr)
            raise SystemExit(1)

    print(_format_status(controller.snapshot()))
    print("Type 'help' for commands.")
    while True:
        try:
            line = input("> ")
        except EOFError:
            break
        except KeyboardInterrupt:
            print()
            continue
        events.drain()
        if not _repl_command(controller, events, line):
            break

    if controller.is_speaking:
        controller.stop()
        events.run_until(lambda: not controller.is_speaking, timeout=STOP_ACK_TIMEOUT)


def main(argv=None):
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="scene-reader",
        description="Scene Reader: speak multilingual sample scenes with adjustable voice, pitch and rate",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("--scenes", help="Path to a JSON scene catalog (default: built-in scenes)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # scenes
    scenes_parser = subparsers.add_parser("scenes", help="List scenes")
    scenes_parser.add_argument("--tag", help="Only scenes with this tag")
    scenes_parser.add_argument("--language", default=DEFAULT_LANGUAGE, help="Language for sentence counts")
    scenes_parser.set_defaults(func=cmd_scenes)

    # languages
    languages_parser = subparsers.add_parser("languages", help="List scene languages and voice counts")
    languages_parser.set_defaults(func=cmd_languages)

    # voices
    voices_parser = subparsers.add_parser("voices", help="List available voices")
    voices_parser.add_argument("--language", help="Only voices for this language code")
    voices_parser.add_argument("--filter", help="Filter voices by substring")
    voices_parser.set_defaults(func=cmd_voices)

    # say
    say_parser = subparsers.add_parser("say", help="Speak one sentence from a scene")
    say_parser.add_argument("--scene", help="Scene id")
    say_parser.add_argument("--language", default=DEFAULT_LANGUAGE, help="Language code")
    say_parser.add_argument("--voice", help="Voice id (default: first voice for the language)")
    say_parser.add_argument("--index", type=int, help="Sentence index (0-based, clamped)")
    say_parser.add_argument("--pitch", type=float, help="Pitch multiplier (0.5 - 2.0)")
    say_parser.add_argument("--rate", type=float, help="Rate multiplier (0.1 - 2.0)")
    say_parser.set_defaults(func=cmd_say)

    # repl
    repl_parser = subparsers.add_parser("repl", help="Interactive session")
    repl_parser.add_argument("--language", default=DEFAULT_LANGUAGE, help="Starting language code")
    repl_parser.set_defaults(func=cmd_repl)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    if not args.command:
        parser.print_help()
        return

    args.func(args)
