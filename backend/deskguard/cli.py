"""Management CLI for the default policy table.

Usage:
    python -m deskguard.cli check-defaults        # Fail if the table is not total
    python -m deskguard.cli show-defaults <role>  # Print one role's defaults as JSON
    python -m deskguard.cli export-defaults       # Print every role's defaults as JSON
"""

import json
import sys

from deskguard.auth.policy import default_permissions, missing_defaults, stray_defaults
from deskguard.auth.schema import Role, parse_role


def check_defaults() -> int:
    """Report table cells missing for, or unknown to, the schema."""
    missing = missing_defaults()
    stray = stray_defaults()
    for role, module, action in missing:
        print(f"  MISSING {role.value}: {module}.{action}")
    for role, module, action in stray:
        print(f"  UNKNOWN {role.value}: {module}.{action}")
    if missing or stray:
        print(f"\n{len(missing)} missing, {len(stray)} unknown cell(s)")
        return 1
    print("Default policy table is complete.")
    return 0


def show_defaults(role_name: str) -> int:
    role = parse_role(role_name)
    if role is None:
        print(f"Unknown role: {role_name}. Choose from: {', '.join(r.value for r in Role)}")
        return 1
    print(json.dumps(default_permissions(role), indent=2))
    return 0


def export_defaults() -> int:
    print(json.dumps({role.value: default_permissions(role) for role in Role}, indent=2))
    return 0


def main(argv: list[str]) -> int:
    cmd = argv[0] if argv else ""
    if cmd == "check-defaults":
        return check_defaults()
    if cmd == "show-defaults" and len(argv) > 1:
        return show_defaults(argv[1])
    if cmd == "export-defaults":
        return export_defaults()
    print("Usage: python -m deskguard.cli [check-defaults|show-defaults <role>|export-defaults]")
    return 2


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
