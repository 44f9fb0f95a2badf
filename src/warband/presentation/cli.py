import logging
import os
import shlex
import time

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from warband.domain.events import LevelGained, PeaceSigned, WarDeclared
from warband.domain.services.world_catalog import faction_name
from warband.application.contract import SnapshotRepository
from warband.application.dtos import ActionResult
from warband.application.errors import GameBusyError, SnapshotError
from warband.application.services.character_creation_service import BACKGROUNDS
from warband.application.services.game_service import GameService


logger = logging.getLogger(__name__)

_CONSOLE = Console()
_BORDER_LOOP = "yellow"
_BORDER_ALERT = "red"
_BORDER_MARKET = "bright_yellow"
_BORDER_WORLD = "magenta"
_BORDER_EVENT = "cyan"

HELP_LINES = (
    "status | market | roads | log [n]",
    "travel <town> | rest | wait | battle | rumor | heal",
    "quest | accept | decline | choose <n>",
    "recruit | hire <companion> | upgrade <from> <to> [n]",
    "buy <good> [n] | sell <good> [n] | item <item> | build <enterprise>",
    "equip <who> <item> | unequip <who> <slot> | skill <skill>",
    "join <faction> | fief | taxes <town> | garrison <town> <unit> <n> to|from | raid <town>",
    "delegate | auto [cycles] | save | help | quit",
)


def _render_message_panel(title: str, lines: list[str], *, border_style: str = _BORDER_LOOP) -> None:
    rows = [str(line) for line in lines if str(line).strip()]
    body = "\n".join(rows) if rows else "No updates."
    _CONSOLE.print(Panel.fit(body, title=f"[bold yellow]{title}[/bold yellow]", border_style=border_style))


def _render_result(result: ActionResult) -> None:
    style = _BORDER_LOOP if result.ok else _BORDER_ALERT
    _render_message_panel("Chronicle" if result.ok else "Not possible", result.messages, border_style=style)


def _render_status(game: GameService) -> None:
    view = game.get_party_status_intent()
    header = Table.grid(padding=(0, 1))
    header.add_column(style="bold yellow", justify="right")
    header.add_column(style="white")
    header.add_row("Day", str(view.day))
    header.add_row("Location", view.location_name)
    header.add_row("Leader", f"{view.name} ({view.faction_name})")
    header.add_row("Level", f"{view.level} ({view.xp} XP)")
    header.add_row("HP", f"{view.hp}/100{' (wounded)' if view.is_wounded else ''}")
    header.add_row("Gold", str(view.gold))
    header.add_row("Renown", str(view.renown))
    header.add_row("Troops", f"{view.troops} fit, {view.wounded_troops} wounded, cap {view.troop_cap}")
    if view.companions:
        header.add_row("Companions", ", ".join(view.companions))
    header.add_row("Quest", view.active_quest or "none")
    header.add_row("Delegated", "yes" if view.is_delegated else "no")
    header.add_row("Tokens", str(view.tokens_used))
    _CONSOLE.print(Panel.fit(header, title="[bold yellow]Party[/bold yellow]", border_style=_BORDER_LOOP))


def _render_market(game: GameService) -> None:
    table = Table(title="Market")
    for column in ("Good", "Buy", "Sell", "Owned"):
        table.add_column(column, justify="left" if column == "Good" else "right")
    for row in game.get_market_intent():
        table.add_row(f"{row.name} [dim]({row.good_id})[/dim]", str(row.buy_price), str(row.sell_price), str(row.owned))
    _CONSOLE.print(Panel.fit(table, border_style=_BORDER_MARKET))


def _render_roads(game: GameService) -> None:
    table = Table(title="Roads")
    for column in ("Town", "Faction", "Notes"):
        table.add_column(column)
    for row in game.get_travel_options_intent():
        notes = []
        if row.hostile:
            notes.append("[red]hostile[/red]")
        if row.looted:
            notes.append("[dim]looted[/dim]")
        table.add_row(f"{row.name} [dim]({row.location_id})[/dim]", row.faction_name, " ".join(notes))
    _CONSOLE.print(Panel.fit(table, border_style=_BORDER_WORLD))


def _render_event(game: GameService) -> None:
    event = game.pending_event
    if event is None:
        return
    lines = [event.description, ""]
    lines.extend(f"{index}. {choice.text}" for index, choice in enumerate(event.choices, start=1))
    lines.append("[dim]Answer with: choose <n>[/dim]")
    _render_message_panel(event.title, lines, border_style=_BORDER_EVENT)


def _show_alert(game: GameService) -> None:
    alert = game.acknowledge_alert()
    if alert:
        _render_message_panel("Provider alert", [alert], border_style=_BORDER_ALERT)
        _CONSOLE.input("[dim]Press ENTER to acknowledge...[/dim]")


def _subscribe_banners(game: GameService) -> None:
    def _on_war(event: WarDeclared) -> None:
        _render_message_panel(
            "War",
            [f"{faction_name(event.faction_a)} and {faction_name(event.faction_b)} are at war (day {event.day})."],
            border_style=_BORDER_ALERT,
        )

    def _on_peace(event: PeaceSigned) -> None:
        _render_message_panel(
            "Peace",
            [f"{faction_name(event.faction_a)} and {faction_name(event.faction_b)} have made peace (day {event.day})."],
            border_style=_BORDER_WORLD,
        )

    def _on_level(event: LevelGained) -> None:
        _render_message_panel("Level up", [f"You reached level {event.level}. Skill points: {event.skill_points}."])

    game.event_bus.subscribe(WarDeclared, _on_war, priority=50)
    game.event_bus.subscribe(PeaceSigned, _on_peace, priority=50)
    game.event_bus.subscribe(LevelGained, _on_level, priority=50)


def _number(args: list[str], index: int, default: int = 1) -> int:
    if len(args) <= index:
        return default
    return int(args[index])


def _run_delegated(game: GameService, cycles: int, interval: float) -> None:
    if not game.is_delegated:
        game.toggle_delegation_intent(True)
    for index in range(max(1, cycles)):
        result = game.run_delegated_cycle_intent()
        _render_result(result)
        _show_alert(game)
        if not game.is_delegated:
            break
        if index < cycles - 1 and interval > 0:
            time.sleep(interval)


def dispatch(game: GameService, command: str, args: list[str], interval: float = 2.0) -> ActionResult | None:
    """Run one typed command. Returns the action result, or None for pure views."""
    if command == "status":
        _render_status(game)
    elif command == "market":
        _render_market(game)
    elif command == "roads":
        _render_roads(game)
    elif command == "log":
        rows = game.log[-_number(args, 0, 15):]
        _render_message_panel("Chronicle", [f"[{row.kind}] {row.message}" for row in rows])
    elif command == "help":
        _render_message_panel("Commands", list(HELP_LINES))
    elif command == "auto":
        _run_delegated(game, _number(args, 0, 1), interval)
    else:
        return _command_action(game, command, args)
    return None


def _command_action(game: GameService, command: str, args: list[str]) -> ActionResult:
    actions = {
        "travel": lambda: game.travel_intent(args[0]),
        "rest": game.rest_intent,
        "wait": game.advance_day_intent,
        "battle": game.seek_battle_intent,
        "rumor": game.gather_rumor_intent,
        "heal": game.heal_party_intent,
        "quest": game.seek_quest_intent,
        "accept": game.accept_quest_intent,
        "decline": game.decline_quest_intent,
        "choose": lambda: game.resolve_travel_event_intent(_number(args, 0) - 1),
        "recruit": game.recruit_troop_intent,
        "hire": lambda: game.recruit_companion_intent(args[0]),
        "upgrade": lambda: game.upgrade_units_intent(args[0], args[1], _number(args, 2)),
        "buy": lambda: game.buy_good_intent(args[0], _number(args, 1)),
        "sell": lambda: game.sell_good_intent(args[0], _number(args, 1)),
        "item": lambda: game.buy_item_intent(args[0]),
        "build": lambda: game.build_enterprise_intent(args[0]),
        "equip": lambda: game.equip_item_intent(args[0], args[1]),
        "unequip": lambda: game.unequip_item_intent(args[0], args[1]),
        "skill": lambda: game.spend_skill_point_intent(args[0]),
        "join": lambda: game.join_faction_intent(args[0]),
        "fief": game.request_fief_intent,
        "taxes": lambda: game.collect_taxes_intent(args[0]),
        "garrison": lambda: game.manage_garrison_intent(args[0], args[1], _number(args, 2), args[3]),
        "raid": lambda: game.raid_location_intent(args[0]),
        "delegate": game.toggle_delegation_intent,
    }
    action = actions.get(command)
    if action is None:
        return ActionResult.rejected(f"Unknown command '{command}'. Type 'help'.")
    try:
        return action()
    except (IndexError, ValueError):
        return ActionResult.rejected(f"Missing or invalid arguments for '{command}'. Type 'help'.")


def _choose_background() -> str:
    table = Table(title="Choose your background")
    table.add_column("Id")
    table.add_column("Background")
    table.add_column("Description")
    for row in BACKGROUNDS.values():
        table.add_row(row.id, row.name, row.description)
    _CONSOLE.print(table)
    while True:
        choice = _CONSOLE.input("[bold]Background id:[/bold] ").strip().lower()
        if choice in BACKGROUNDS:
            return choice
        _CONSOLE.print("[red]Unknown background.[/red]")


def _start_session(game: GameService, store: SnapshotRepository) -> bool:
    snapshot = store.load()
    if snapshot is not None:
        answer = _CONSOLE.input("A saved campaign exists. Continue it? [Y/n] ").strip().lower()
        if answer in {"", "y", "yes"}:
            try:
                game.load_snapshot(snapshot)
                return True
            except SnapshotError as exc:
                logger.warning("Saved campaign could not be restored: %s", exc)
                store.clear()
                _CONSOLE.print("[red]The saved campaign was damaged and has been discarded.[/red]")
    while not game.has_game:
        result = game.start_new_game_intent(_choose_background())
        _render_result(result)
        _show_alert(game)
    return True


def run_cli(game: GameService, store: SnapshotRepository) -> None:
    interval = float(os.getenv("WARBAND_DELEGATE_INTERVAL_S", "2.0"))
    _subscribe_banners(game)
    _start_session(game, store)
    _render_status(game)
    while True:
        _render_event(game)
        raw = _CONSOLE.input("[bold yellow]>[/bold yellow] ").strip()
        if not raw:
            continue
        parts = shlex.split(raw)
        command, args = parts[0].lower(), parts[1:]
        if command in {"quit", "exit"}:
            store.save(game.to_snapshot())
            _CONSOLE.print("Campaign saved. Farewell.")
            return
        if command == "save":
            store.save(game.to_snapshot())
            _CONSOLE.print("Campaign saved.")
            continue
        try:
            result = dispatch(game, command, args, interval)
        except GameBusyError as exc:
            result = ActionResult.rejected(str(exc))
        if result is not None:
            _render_result(result)
        _show_alert(game)
        if game.has_game:
            store.save(game.to_snapshot())
