import argparse
import logging
import os
import sys
from datetime import datetime

import dotenv
from colorama import Fore

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from voice_notes import (
    AudioFailedEvent,
    AudioReadyEvent,
    IdentityReadyEvent,
    MessageSavedEvent,
    MessageSaveFailedEvent,
    MessageUpdatedEvent,
    NotReadyError,
    VoiceNotepad,
    VoiceNotesConfig,
)
from voice_notes.identity import StaticIdentityProvider

dotenv.load_dotenv()


def print_event(msg):
    # Print the event and the timestamp (including milliseconds)
    now = datetime.now().strftime("%H:%M:%S.%f")
    print(f"[{now}] {msg}")


def on_event(event):
    if isinstance(event, IdentityReadyEvent):
        print_event(f"{Fore.CYAN}Your user ID is: {event['identity']}{Fore.RESET}")

    elif isinstance(event, MessageUpdatedEvent):
        print_event(f"{Fore.GREEN}Saved message: {event['content']}{Fore.RESET}")

    elif isinstance(event, MessageSavedEvent):
        print_event(f"{Fore.BLUE}Message saved.{Fore.RESET}")

    elif isinstance(event, MessageSaveFailedEvent):
        print_event(f"{Fore.RED}Error saving the message: {event['error']}{Fore.RESET}")

    elif isinstance(event, AudioReadyEvent):
        print_event(f"{Fore.GREEN}Audio ready: {event['handle'].path}{Fore.RESET}")

    elif isinstance(event, AudioFailedEvent):
        print_event(f"{Fore.RED}Error generating audio: {event['error']}{Fore.RESET}")


def main():
    parser = argparse.ArgumentParser(description="Save a message and listen to it.")
    parser.add_argument("--store", choices=["firestore", "memory"], help="Document store backend")
    parser.add_argument("--user", help="Use this user ID instead of signing in")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    config = VoiceNotesConfig.from_env()
    if args.store:
        config.store_backend = args.store

    identity_provider = None
    if args.user or config.store_backend == "memory":
        identity_provider = StaticIdentityProvider(args.user or "local-user")

    notepad = VoiceNotepad(
        event_callback=on_event,
        config=config,
        identity_provider=identity_provider,
    )
    notepad.start()

    player = None

    print("Commands: save <text> | speak <text> | play | quit")
    try:
        while True:
            try:
                line = input("> ").strip()
            except EOFError:
                break

            command, _, text = line.partition(" ")

            if command == "save":
                notepad.save_message(text)
            elif command == "speak":
                future = notepad.generate_audio(text)
                if future is not None:
                    print_event(f"{Fore.YELLOW}Generating...{Fore.RESET}")
            elif command == "play":
                if player is None:
                    from voice_notes.audio_io import Player

                    player = Player()
                try:
                    notepad.play_audio(player)
                except NotReadyError as e:
                    print_event(f"{Fore.RED}{e}{Fore.RESET}")
            elif command in ("quit", "exit"):
                break
            elif command:
                print("Unknown command")
    except KeyboardInterrupt:
        pass
    finally:
        notepad.terminate()
        if player is not None:
            player.terminate()


if __name__ == "__main__":
    main()
