#!/usr/bin/env python3
"""Smoke-test the navigation and ERM stored procedures against a real database."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ips_api.catalogs import get_form_catalog, get_form_id_overrides
from ips_api.db import ProcedureClient, ProcedureError, fetch_navigation
from ips_api.navigation import synthesize
from ips_api.routes.erm import build_erm_result, parse_required_date
from ips_api.settings import get_settings


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--forms",
        nargs="*",
        type=int,
        default=None,
        help="Specific FormIDs to call ReadNewERM with (default: every catalog form)",
    )
    parser.add_argument("--obj-type-list", default="", help="ObjTypeList argument for ReadNewERM")
    parser.add_argument("--required-date", default=None, help="RequiredDate argument (ISO date)")
    parser.add_argument(
        "--json",
        action="store_true",
        help="Emit JSON instead of human-readable text",
    )
    return parser.parse_args()


def check_navigation(client: ProcedureClient) -> Dict[str, Any]:
    settings = get_settings()
    try:
        modules, children = fetch_navigation(client)
    except ProcedureError as exc:
        return {"ok": False, "error": str(exc)}

    tree = synthesize(
        modules,
        children,
        erm_parent_id=settings.erm_parent_id,
        overrides=get_form_id_overrides(),
    )
    return {
        "ok": True,
        "modules": len(modules),
        "active_modules": len(tree.active_modules()),
        "children": len(children),
        "erm_children": len(tree.erm_children()),
    }


def check_forms(client: ProcedureClient, form_ids: List[int], obj_type_list: str, required_date: str | None) -> List[dict]:
    results: List[dict] = []
    date_value = parse_required_date(required_date)
    for form_id in form_ids:
        try:
            result = build_erm_result(client, form_id, obj_type_list, date_value, debug_row_checks=True)
        except ProcedureError as exc:
            results.append({"form_id": form_id, "ok": False, "error": str(exc)})
            continue
        results.append(
            {
                "form_id": form_id,
                "ok": True,
                "total_rows": result.totalRows,
                "columns": result.columns,
            }
        )
    return results


def main() -> None:
    args = parse_args()
    settings = get_settings()
    client = ProcedureClient.from_settings(settings)

    form_ids = args.forms or [form.id for form in get_form_catalog().forms]
    navigation = check_navigation(client)
    forms = check_forms(client, form_ids, args.obj_type_list, args.required_date)

    if args.json:
        output = {
            "database": f"{settings.db_host}:{settings.db_port}/{settings.db_name}",
            "navigation": navigation,
            "forms": forms,
        }
        json.dump(output, sys.stdout, indent=2, default=str)
        sys.stdout.write("\n")
        return

    print(f"Database: {settings.db_host}:{settings.db_port}/{settings.db_name}")
    print("\nReadNavigation:")
    if not navigation["ok"]:
        print(f"  error: {navigation['error']}")
    else:
        print(f"  modules:      {navigation['modules']} ({navigation['active_modules']} active)")
        print(f"  children:     {navigation['children']}")
        print(f"  ERM children: {navigation['erm_children']}")

    print("\nReadNewERM:")
    for record in forms:
        form_id = record["form_id"]
        if not record["ok"]:
            print(f"- {form_id}: error")
            print(f"    error: {record['error']}")
            continue
        columns = record["columns"]
        print(f"- {form_id}: {record['total_rows']} rows, {len(columns)} columns")
        if columns:
            preview = ", ".join(columns[:6])
            more = "" if len(columns) <= 6 else f" ... {len(columns) - 6} more"
            print(f"    columns: {preview}{more}")


if __name__ == "__main__":
    main()
