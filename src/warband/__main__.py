import argparse
import logging
import os

from dotenv import load_dotenv

from warband.bootstrap import create_game_service, create_snapshot_store
from warband.presentation.cli import run_cli


def _print_help_surface() -> None:
    print("\nHelp:")
    print("- Type 'help' in game for the command list.")
    print("- Set WARBAND_GEMINI_API_KEY for generated content, or leave it unset to play offline.")
    print("- A damaged save can be removed with --new or by deleting WARBAND_SAVE_PATH.")


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="warband", description="Persistent-world mercenary campaign in the console.")
    parser.add_argument("--new", action="store_true", help="discard any saved campaign before starting")
    parser.add_argument("--seed", type=int, help="world seed (overrides WARBAND_SEED)")
    return parser.parse_args(argv)


def main(argv=None):
    load_dotenv()
    args = _parse_args(argv)
    logging.basicConfig(
        level=os.getenv("WARBAND_LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if args.seed is not None:
        os.environ["WARBAND_SEED"] = str(args.seed)
    try:
        store = create_snapshot_store()
        if args.new:
            store.clear()
        game_service = create_game_service()
        run_cli(game_service, store)
    except (KeyboardInterrupt, EOFError):
        print("\nSession ended.")
    except Exception as exc:
        logging.getLogger(__name__).exception("Fatal error")
        print("An unexpected error occurred. The game closed safely.")
        print(f"Reason: {exc}")
        _print_help_surface()


if __name__ == "__main__":
    main()
