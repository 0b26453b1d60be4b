#!/usr/bin/env python
"""CLI entry point for the crafting-path resolver."""
from __future__ import annotations

import argparse
import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, List, Optional

from .book import build_book, save_book
from .catalog import Element, ElementCatalog
from .closure import ClosureBuilder
from .config import BOOK_FORMATS, UserConfig, load_config
from .errors import AlchemyError, ConfigError, Unreachable
from .graph import RecipeGraph
from .history import History, load_history
from .loader import load_catalog
from .resolver import BuildPlan, PathResolver
from .resolver_logging import LogLevel, ResolverLogger, create_logger, parse_level


@dataclass
class GameSession:
    """Everything a command needs: the catalog, its graph and what the player owns."""
    catalog: ElementCatalog
    graph: RecipeGraph
    history: History
    acquired: FrozenSet[str]
    logger: ResolverLogger

    def resolver(self) -> PathResolver:
        return PathResolver(self.graph, available=self.acquired, logger=self.logger)

    def is_owned(self, element_id: str) -> bool:
        return element_id in self.acquired or self.graph.is_base(element_id)


# -----------------------------------------------------------------------------
# Formatting
# -----------------------------------------------------------------------------

def format_plan(plan: BuildPlan, catalog: ElementCatalog) -> str:
    """One line per step: ``- A + B (which gives the C)``."""
    lines = []
    for step in plan:
        lines.append(
            f"- {catalog.name_of(step.ingredient_a)} + {catalog.name_of(step.ingredient_b)}"
            f" (which gives the {catalog.name_of(step.produced)})"
        )
    return "\n".join(lines)


def _js_id(element_id: str) -> str:
    return element_id if element_id.isdigit() else json.dumps(element_id)


def format_javascript(plan: BuildPlan) -> str:
    """Browser console commands that append the plan's steps to the game history."""
    if not plan:
        return ""
    lines = [
        """localStorage.setItem("stats", '{"firstLaunch":0,"sessionsCount":1}');""",
        """localStorage.setItem("tutorials", '{"shownText":["final","exhausted"]}');""",
        """var game_history = JSON.parse(localStorage.getItem("history")) || [];""",
    ]
    for step in plan:
        lines.append(
            f"game_history.push([{_js_id(step.ingredient_a)}, {_js_id(step.ingredient_b)}, 0]);"
        )
    lines.append("""localStorage.setItem("history", JSON.stringify(game_history));""")
    return "\n".join(lines)


def format_element(
    element: Element,
    session: GameSession,
    only_combinations: bool = False,
    already_done: bool = False,
    unavailable: bool = False,
) -> str:
    """
    Describe an element: its flags, the recipes producing it and what it creates.

    Recipes the player cannot perform yet (an ingredient is not owned) are
    hidden unless ``unavailable``; recipes already in the history are hidden
    unless ``already_done``. With ``only_combinations`` only the recipe
    lines are shown, and nothing at all when none is left.
    """
    catalog = session.catalog
    recipes = list(session.graph.recipes_for(element))
    if not unavailable:
        recipes = [r for r in recipes if all(session.is_owned(i) for i in r.ingredients)]
    if not already_done:
        recipes = [r for r in recipes if not session.history.has_combination(r.ingredient_a, r.ingredient_b)]

    if only_combinations and not recipes:
        return ""

    lines = [f"Element #{element.id}: {element.name}"]
    if not only_combinations:
        if element.is_base:
            lines.append("Is a base element (is present at the start)")
        if element.final:
            lines.append("Is a final element (can't be mixed with other items)")
        if element.hidden:
            lines.append("Is a hidden element")
        if element.condition is not None:
            lines.append(element.condition.describe(catalog))
        if element.id in session.acquired:
            lines.append("Already in your inventory")
    for recipe in recipes:
        lines.append(f"= {catalog.name_of(recipe.ingredient_a)} + {catalog.name_of(recipe.ingredient_b)}")
    if not only_combinations:
        creates: List[str] = []
        for recipe in session.graph.used_in(element):
            if recipe.produces not in creates:
                creates.append(recipe.produces)
        if creates:
            lines.append("Can create:")
            lines.extend(f"- {catalog.name_of(key)}" for key in creates)
    lines.append("")
    return "\n".join(lines)


# -----------------------------------------------------------------------------
# Session setup
# -----------------------------------------------------------------------------

def open_session(args: argparse.Namespace, config: UserConfig, logger: ResolverLogger) -> GameSession:
    """Load the catalog and, unless disabled, the history named by args or config."""
    catalog = load_catalog(args.file or config.data.elements_file, logger=logger)

    history = History()
    if not args.no_history and config.data.use_history:
        if args.history_file is not None:
            history = load_history(args.history_file)
        elif config.data.history_file.exists():
            history = load_history(config.data.history_file)
        else:
            logger.log_warning("HISTORY",
                               f"{config.data.history_file} not found, assuming an empty history")

    acquired = history.acquired_elements(catalog, logger)
    return GameSession(catalog, RecipeGraph(catalog), history, acquired, logger)


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

def cmd_display(args: argparse.Namespace, session: GameSession) -> None:
    options = dict(
        only_combinations=args.only_combinations,
        already_done=args.already_done,
        unavailable=args.unavailable,
    )
    if args.element.strip():
        elements = [session.catalog.find(args.element)]
    else:
        elements = list(session.catalog)
    for element in elements:
        text = format_element(element, session, **options)
        if text:
            print(text)


def cmd_get(args: argparse.Namespace, session: GameSession) -> None:
    element = session.catalog.find(args.element)
    try:
        plan = session.resolver().resolve(element)
    except Unreachable:
        if element.condition is not None:
            print(element.condition.describe(session.catalog))
        raise
    session.logger.log_plan(plan, session.catalog, title=f"Plan for {element.name}")
    if args.javascript:
        if plan:
            print(format_javascript(plan))
    elif not plan:
        print(f"You already have the {element.name} in your inventory")
    else:
        print(f"To get the {element.name}, you must combine:")
        print(format_plan(plan, session.catalog))


def cmd_finish(args: argparse.Namespace, session: GameSession) -> None:
    builder = ClosureBuilder(session.graph, resolver=session.resolver(), logger=session.logger)
    plan = builder.completion_plan()
    if args.javascript:
        if plan:
            print(format_javascript(plan))
    elif not plan:
        print("You already finished the game")
    else:
        print("To finish the game, you must combine:")
        print(format_plan(plan, session.catalog))


def cmd_book(args: argparse.Namespace, session: GameSession, config: UserConfig) -> None:
    # The book describes the game itself, so owned elements keep their recipes
    builder = ClosureBuilder(session.graph, resolver=PathResolver(session.graph, logger=session.logger),
                             logger=session.logger)
    book = build_book(builder.build_all(), session.catalog,
                      include_unreachable=config.book.include_unreachable)
    fmt = args.format or config.book.format
    output = args.output or config.book.output_file
    save_book(book, output, fmt)
    print(f"Wrote {len(book)} elements to {output}")


# -----------------------------------------------------------------------------
# Entry point
# -----------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="alchemy-resolver",
        description="Find how to craft Little Alchemy elements from what you already have.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  alchemy-resolver get brick
  alchemy-resolver --no-history display mud --unavailable
  alchemy-resolver book -o book.json --format json
        """,
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help="Path to config YAML (default: Alchemy/DefaultConfig.yaml)",
    )
    parser.add_argument(
        "--file",
        type=Path,
        default=None,
        help="File with elements and combinations (default: from config)",
    )
    parser.add_argument(
        "--history-file",
        type=Path,
        default=None,
        help="File with the game history (default: from config)",
    )
    parser.add_argument(
        "--no-history",
        action="store_true",
        help="Ignore the history and start from the base elements",
    )
    parser.add_argument(
        "-v",
        "--log-level",
        type=str.upper,
        default=None,
        choices=[level.name for level in LogLevel],
        help="Logging verbosity on stderr (default: from config)",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    display = sub.add_parser("display", help="Display elements and their combinations")
    display.add_argument("element", nargs="?", default="", help="Element id or name (default: all)")
    display.add_argument("--only-combinations", action="store_true", help="Only display combinations")
    display.add_argument("--already-done", action="store_true", help="Display already done combinations")
    display.add_argument("--unavailable", action="store_true", help="Display unavailable combinations")

    get = sub.add_parser("get", help="Display how to get an element")
    get.add_argument("element", help="Element id or name")
    get.add_argument("--javascript", action="store_true",
                     help="Print browser console commands instead of instructions")

    finish = sub.add_parser("finish", help="Display how to finish the game")
    finish.add_argument("--javascript", action="store_true",
                        help="Print browser console commands instead of instructions")

    book = sub.add_parser("book", help="Export every element's plan as YAML or JSON")
    book.add_argument("-o", "--output", type=Path, default=None, help="Output file (default: from config)")
    book.add_argument("--format", choices=BOOK_FORMATS, default=None, help="Output format (default: from config)")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        if args.config is not None and not args.config.exists():
            raise ConfigError(f"config file {args.config} doesn't exist")
        config = load_config(args.config)
        level = parse_level(args.log_level) if args.log_level else config.logging.level

        with create_logger(level, log_file=config.logging.log_file) as logger:
            session = open_session(args, config, logger)
            if args.command == "display":
                cmd_display(args, session)
            elif args.command == "get":
                cmd_get(args, session)
            elif args.command == "finish":
                cmd_finish(args, session)
            elif args.command == "book":
                cmd_book(args, session, config)
    except AlchemyError as e:
        print(f"Error: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
