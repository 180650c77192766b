"""CLI entry point for tallybook."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from decimal import Decimal, InvalidOperation

from dotenv import load_dotenv

from .auth import resolve_session
from .config import load_config
from .db import create_gateway
from .errors import NotAuthenticated, TallybookError
from .insights import budget_usage, monthly_spending, spending_by_category
from .models import CATEGORIES, PERIODS, Budget, ShoppingItem, ShoppingList, new_id
from .notify import ConsoleNotifier
from .pipeline import IngestionPipeline
from .store import AppState


def main(argv: list[str] | None = None) -> None:
    load_dotenv()

    parser = argparse.ArgumentParser(
        prog="tallybook",
        description="Personal finance tracker: scan receipts, track budgets",
    )
    parser.add_argument(
        "--config", "-c", type=str, default=None, help="Path to the config file (TOML)"
    )
    parser.add_argument("--user", "-u", type=str, default=None, help="User id")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command")

    # scan
    scan_parser = sub.add_parser("scan", help="Read a receipt image and save its total")
    scan_parser.add_argument(
        "image", nargs="+", help="Receipt image(s); only the first accepted one is used"
    )
    scan_parser.add_argument("--json", action="store_true", help="Print JSON output")

    # receipts
    receipts_parser = sub.add_parser("receipts", help="List saved receipts")
    receipts_parser.add_argument("--json", action="store_true", help="Print JSON output")

    # delete
    delete_parser = sub.add_parser("delete", help="Delete a receipt")
    delete_parser.add_argument("receipt_id", help="Receipt id")

    # budgets
    budgets_parser = sub.add_parser("budgets", help="List budgets")
    budgets_parser.add_argument("--json", action="store_true", help="Print JSON output")

    # budget
    budget_parser = sub.add_parser("budget", help="Create or update a category budget")
    budget_parser.add_argument("category", choices=CATEGORIES)
    budget_parser.add_argument("limit", help="Spending limit, e.g. 250.00")
    budget_parser.add_argument("--period", choices=PERIODS, default="monthly")

    # export
    export_parser = sub.add_parser("export", help="Export everything to a spreadsheet")
    export_parser.add_argument(
        "--output", "-o", type=str, default=None, metavar="FILE", help="Output .xlsx path"
    )

    # insights
    insights_parser = sub.add_parser("insights", help="Spending by category and month, budget usage")
    insights_parser.add_argument("--json", action="store_true", help="Print JSON output")

    # lists
    lists_parser = sub.add_parser("lists", help="Manage shopping lists")
    lists_sub = lists_parser.add_subparsers(dest="lists_command")
    lists_show = lists_sub.add_parser("show", help="Show all lists")
    lists_show.add_argument("--json", action="store_true", help="Print JSON output")
    lists_new = lists_sub.add_parser("new", help="Create a list")
    lists_new.add_argument("name")
    lists_add = lists_sub.add_parser("add", help="Add an item to a list")
    lists_add.add_argument("list", help="List id or name")
    lists_add.add_argument("item", help="Item name")
    lists_add.add_argument("--quantity", "-q", type=int, default=1)
    lists_toggle = lists_sub.add_parser("toggle", help="Mark an item done / not done")
    lists_toggle.add_argument("list", help="List id or name")
    lists_toggle.add_argument("item", help="Item id or name")
    lists_delete = lists_sub.add_parser("delete", help="Delete a list and its items")
    lists_delete.add_argument("list", help="List id or name")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)

    try:
        session = resolve_session(config, args.user)
    except NotAuthenticated as e:
        print(str(e), file=sys.stderr)
        sys.exit(1)

    gateway = create_gateway(config, access_token=session.access_token)
    state = AppState(gateway, session)

    code = 0
    try:
        match args.command:
            case "scan":
                code = asyncio.run(_cmd_scan(config, state, args))
            case "receipts":
                code = asyncio.run(_cmd_receipts(state, args))
            case "delete":
                code = asyncio.run(_cmd_delete(state, args))
            case "budgets":
                code = asyncio.run(_cmd_budgets(state, args))
            case "budget":
                code = asyncio.run(_cmd_budget(state, args))
            case "export":
                code = asyncio.run(_cmd_export(config, state, args))
            case "insights":
                code = asyncio.run(_cmd_insights(state, args))
            case "lists":
                code = asyncio.run(_cmd_lists(state, args))
    except TallybookError as e:
        print(f"Error: {e}", file=sys.stderr)
        code = 1
    finally:
        gateway.close()

    if code:
        sys.exit(code)


async def _cmd_scan(config, state: AppState, args) -> int:
    await state.initialize()
    pipeline = IngestionPipeline.from_config(config, state, notifier=ConsoleNotifier())

    print("🔍 Processing receipt...")
    result = await pipeline.ingest(args.image)
    if result is None:
        print("No .jpg/.jpeg/.png image given.", file=sys.stderr)
        return 1

    if args.json:
        data = {
            "ok": result.ok,
            "image": result.image_path,
            "language": result.language,
            "reason": result.reason,
            "stages": [s.value for s in result.stages],
        }
        if result.receipt is not None:
            data["receipt"] = {
                "id": result.receipt.id,
                "date": result.receipt.date.isoformat(),
                "total": str(result.receipt.total),
                "category": result.receipt.category,
            }
        print(json.dumps(data, ensure_ascii=False, indent=2))
    elif result.receipt is not None:
        print(f"   Total: {result.receipt.total:.2f}  (id {result.receipt.id})")
    return 0 if result.ok else 1


async def _cmd_receipts(state: AppState, args) -> int:
    await state.initialize()

    if args.json:
        data = [
            {
                "id": r.id,
                "date": r.date.isoformat(),
                "total": str(r.total),
                "category": r.category,
                "notes": r.notes,
            }
            for r in state.receipts
        ]
        print(json.dumps(data, ensure_ascii=False, indent=2))
        return 0

    if not state.receipts:
        print("No receipts yet.")
        return 0
    print(f"🧾 Receipts ({len(state.receipts)}):")
    for r in state.receipts:
        print(f"  {r.date:%Y-%m-%d}  {r.total:>10.2f}  {r.category:<13} {r.id}")
    total = sum((r.total for r in state.receipts), Decimal("0"))
    print(f"  {'':10}  {total:>10.2f}  total")
    return 0


async def _cmd_delete(state: AppState, args) -> int:
    await state.initialize()
    if not any(r.id == args.receipt_id for r in state.receipts):
        print(f"Receipt not found: {args.receipt_id}", file=sys.stderr)
        return 1
    await state.delete_receipt(args.receipt_id)
    print(f"Deleted {args.receipt_id}")
    return 0


async def _cmd_budgets(state: AppState, args) -> int:
    await state.initialize()

    if args.json:
        data = [
            {
                "id": b.id,
                "category": b.category,
                "limit": str(b.limit),
                "spent": str(b.spent),
                "period": b.period,
            }
            for b in state.budgets
        ]
        print(json.dumps(data, ensure_ascii=False, indent=2))
        return 0

    if not state.budgets:
        print("No budgets yet.")
        return 0
    print(f"💰 Budgets ({len(state.budgets)}):")
    for u in budget_usage(state.budgets):
        b = u.budget
        bar = "█" * int(u.ratio * 10)
        print(f"  {b.category:<13} {b.spent:>9.2f} / {b.limit:<9.2f} {b.period:<8} {bar}")
    return 0


async def _cmd_budget(state: AppState, args) -> int:
    try:
        limit = Decimal(args.limit)
    except InvalidOperation:
        print(f"Invalid limit: {args.limit!r}", file=sys.stderr)
        return 1

    await state.initialize()
    existing = next((b for b in state.budgets if b.category == args.category), None)
    budget = Budget(
        id=existing.id if existing else new_id(),
        category=args.category,
        limit=limit,
        spent=existing.spent if existing else Decimal("0"),
        period=args.period,
    )
    await state.update_budget(budget)
    print(f"Budget for {budget.category}: {budget.limit:.2f} ({budget.period})")
    return 0


async def _cmd_export(config, state: AppState, args) -> int:
    await state.initialize()
    path = await state.export_data(args.output or config.export.path)
    print(f"📄 Exported to {path}")
    return 0


async def _cmd_insights(state: AppState, args) -> int:
    await state.initialize()
    by_category = spending_by_category(state.receipts)
    by_month = monthly_spending(state.receipts)
    usage = budget_usage(state.budgets)

    if args.json:
        data = {
            "by_category": {k: str(v) for k, v in by_category.items()},
            "by_month": {k: str(v) for k, v in by_month.items()},
            "budgets": [
                {
                    "category": u.budget.category,
                    "spent": str(u.budget.spent),
                    "limit": str(u.budget.limit),
                    "remaining": str(u.remaining),
                    "over_limit": u.over_limit,
                }
                for u in usage
            ],
        }
        print(json.dumps(data, ensure_ascii=False, indent=2))
        return 0

    if not state.receipts and not state.budgets:
        print("Nothing to analyse yet.")
        return 0
    print("📊 Spending by category:")
    for category, total in by_category.items():
        print(f"  {category:<13} {total:>10.2f}")
    print("📅 Monthly spending:")
    for month, total in by_month.items():
        print(f"  {month:<13} {total:>10.2f}")
    if usage:
        print("💰 Budgets:")
        for u in usage:
            flag = "  ⚠️ over" if u.over_limit else ""
            print(
                f"  {u.budget.category:<13} {u.budget.spent:>9.2f} / {u.budget.limit:<9.2f}"
                f" {'█' * int(u.ratio * 10)}{flag}"
            )
    return 0


def _find_list(state: AppState, key: str) -> ShoppingList | None:
    for shopping_list in state.shopping_lists:
        if shopping_list.id == key:
            return shopping_list
    for shopping_list in state.shopping_lists:
        if shopping_list.name.casefold() == key.casefold():
            return shopping_list
    return None


def _find_item(shopping_list: ShoppingList, key: str) -> ShoppingItem | None:
    for item in shopping_list.items:
        if item.id == key or item.name.casefold() == key.casefold():
            return item
    return None


async def _cmd_lists(state: AppState, args) -> int:
    await state.initialize()
    action = args.lists_command or "show"

    if action == "new":
        shopping_list = ShoppingList(id=new_id(), name=args.name)
        await state.add_shopping_list(shopping_list)
        print(f"Created list {shopping_list.name} ({shopping_list.id})")
        return 0

    if action == "show":
        if getattr(args, "json", False):
            data = [
                {
                    "id": l.id,
                    "name": l.name,
                    "items": [
                        {"id": i.id, "name": i.name, "quantity": i.quantity, "completed": i.completed}
                        for i in l.items
                    ],
                }
                for l in state.shopping_lists
            ]
            print(json.dumps(data, ensure_ascii=False, indent=2))
            return 0
        if not state.shopping_lists:
            print("No shopping lists yet.")
            return 0
        for l in state.shopping_lists:
            print(f"🛒 {l.name} ({l.id})")
            for i in l.items:
                mark = "x" if i.completed else " "
                print(f"  [{mark}] {i.name} x{i.quantity}")
        return 0

    shopping_list = _find_list(state, args.list)
    if shopping_list is None:
        print(f"Shopping list not found: {args.list}", file=sys.stderr)
        return 1

    match action:
        case "add":
            item = ShoppingItem(id=new_id(), name=args.item, quantity=args.quantity)
            await state.update_shopping_list(
                replace(shopping_list, items=[*shopping_list.items, item])
            )
            print(f"Added {item.name} x{item.quantity} to {shopping_list.name}")
        case "toggle":
            item = _find_item(shopping_list, args.item)
            if item is None:
                print(f"Item not found: {args.item}", file=sys.stderr)
                return 1
            toggled = replace(item, completed=not item.completed)
            await state.update_shopping_list(
                replace(
                    shopping_list,
                    items=[toggled if i.id == item.id else i for i in shopping_list.items],
                )
            )
            print(f"{toggled.name}: {'done' if toggled.completed else 'not done'}")
        case "delete":
            await state.delete_shopping_list(shopping_list.id)
            print(f"Deleted list {shopping_list.name}")
    return 0


if __name__ == "__main__":
    main()
