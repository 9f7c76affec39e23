#!/usr/bin/env python3
"""Dormhub CLI - browse dorms and manage your room assignment from a terminal.

Each invocation logs in, runs one command, and exits. Credentials come from
--email/--password or DORMHUB_EMAIL/DORMHUB_PASSWORD (a .env file is read).

Usage:
    dormhub dorms
    dormhub rooms <dorm_id>
    dormhub whoami
    dormhub assign <room_id> [--dorm <dorm_id>]
    dormhub unassign
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import replace

from dotenv import load_dotenv

from dormapi.client import SessionRoomClient, load_config_from_env
from dormhub.errors import DormHubError
from dormhub.logging_config import configure_logging, get_logger
from dormhub.models import Dorm, Room, UserInfo
from dormhub.workflow import DormOverview, RoomAssignmentWorkflow

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dormhub", description="Browse dorms and manage your room assignment")

    parser.add_argument("--base-url", help="API base URL (default: DORMHUB_API_URL or http://localhost:3000)")
    parser.add_argument("--email", help="Login email (default: DORMHUB_EMAIL)")
    parser.add_argument("--password", help="Login password (default: DORMHUB_PASSWORD)")
    parser.add_argument("--timeout", type=float, help="Per-request timeout in seconds")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("dorms", help="List dorms and your current assignment")

    rooms = commands.add_parser("rooms", help="List the rooms of a dorm")
    rooms.add_argument("dorm_id")

    commands.add_parser("whoami", help="Show your user info")

    assign = commands.add_parser("assign", help="Assign yourself to a room")
    assign.add_argument("room_id")
    assign.add_argument("--dorm", dest="dorm_id", help="Dorm of the room; enables the capacity check before assigning")

    commands.add_parser("unassign", help="Leave your current room")

    return parser


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    return build_parser().parse_args(args)


def format_overview(overview: DormOverview) -> str:
    lines = []
    if overview.assigned_room_id:
        lines.append(f"You are currently assigned to {overview.assigned_room_id}")
    elif not overview.user_info_available:
        lines.append("(could not load your assignment)")
    lines.append("Dorms:")
    if not overview.dorms:
        lines.append("  (none)")
    for dorm in overview.dorms:
        lines.append(f"  {dorm.id:<24} {dorm.name}")
    return "\n".join(lines)


def format_rooms(dorm: Dorm, rooms: list[Room]) -> str:
    lines = [f"{dorm.name} Rooms:"]
    if not rooms:
        lines.append("  (none)")
    for room in rooms:
        status = "FULL" if room.is_full else f"{room.spots_left} open"
        lines.append(f"  Room {room.number} [{room.id}]  Capacity: {room.occupancy}/{room.capacity}  ({status})")
        for occupant in room.occupants:
            lines.append(f"      {occupant.name}")
    return "\n".join(lines)


def format_user(user_info: UserInfo) -> str:
    who = user_info.email or user_info.name or user_info.id or "current user"
    room = user_info.assigned_room_id or "no room"
    return f"{who}: {room}"


def _find_dorm(workflow: RoomAssignmentWorkflow, dorm_id: str) -> Dorm:
    overview = workflow.open_dorms()
    for dorm in overview.dorms:
        if dorm.id == dorm_id:
            return dorm
    # Let the server decide whether the id exists
    return Dorm(id=dorm_id, name=dorm_id)


def run_command(args: argparse.Namespace, workflow: RoomAssignmentWorkflow) -> None:
    client = workflow.client

    if args.command == "dorms":
        print(format_overview(workflow.open_dorms()))

    elif args.command == "rooms":
        view = workflow.open_rooms(_find_dorm(workflow, args.dorm_id))
        print(format_rooms(view.dorm, view.rooms))

    elif args.command == "whoami":
        session = client.session
        assert session is not None
        print(format_user(client.get_user_info(session)))

    elif args.command == "assign":
        if args.dorm_id:
            view = workflow.open_rooms(_find_dorm(workflow, args.dorm_id))
            room = next((r for r in view.rooms if r.id == args.room_id), None)
            if room is None:
                raise SystemExit(f"Room {args.room_id} is not in dorm {args.dorm_id}")
            overview = workflow.assign(room)
        else:
            session = client.session
            assert session is not None
            client.assign_room(session, args.room_id)
            overview = workflow.open_dorms()
        print("Room assigned successfully!")
        print(format_overview(overview))

    elif args.command == "unassign":
        user_info = workflow.unassign()
        print("Successfully unassigned from the room")
        if user_info is None:
            print("Current assignment unknown (could not reload user info)")
        else:
            print(format_user(user_info))


def main(argv: list[str] | None = None) -> int:
    """Main entry point. Returns the process exit code."""
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.debug or os.getenv("LOG_LEVEL"):
        configure_logging("cli", debug=args.debug)
    else:
        configure_logging("cli", logging.WARNING)

    email = args.email or os.getenv("DORMHUB_EMAIL")
    password = args.password or os.getenv("DORMHUB_PASSWORD")
    if not email or not password:
        parser.error("credentials required: pass --email/--password or set DORMHUB_EMAIL/DORMHUB_PASSWORD")

    try:
        config = load_config_from_env()
        if args.base_url:
            config = replace(config, base_url=args.base_url)
        if args.timeout is not None:
            config = replace(config, timeout=args.timeout)
    except DormHubError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    with SessionRoomClient(config) as client:
        workflow = RoomAssignmentWorkflow(client)
        try:
            workflow.sign_in(email, password)
            run_command(args, workflow)
        except DormHubError as e:
            logger.debug(f"{args.command} failed", exc_info=True)
            print(f"{args.command} failed: {e}", file=sys.stderr)
            return 1
        finally:
            workflow.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
