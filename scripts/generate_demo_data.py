#!/usr/bin/env python3
"""
Generate a demo access fixture (roles, groups, randomly generated staff).
The JSON output can be loaded at start-up through SEED_FIXTURE_PATH.
"""

import argparse

from clinic_access.rbac import AccessControl
from clinic_access.seed import dump_fixture, generate_fixture, load_fixture


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("output", help="path of the JSON fixture to write")
    parser.add_argument("--users", type=int, default=25, help="number of staff to generate")
    parser.add_argument("--seed", type=int, default=42, help="random seed")
    args = parser.parse_args()

    print("=" * 70)
    print("Clinic Access Demo Fixture Generator")
    print("=" * 70)

    # round-trip through AccessControl so the file reflects the enforced state
    access = load_fixture(AccessControl(), generate_fixture(args.users, args.seed))
    data = dump_fixture(access, args.output)

    print(f"  roles:  {len(data['roles'])}")
    print(f"  groups: {len(data['groups'])}")
    print(f"  users:  {len(data['users'])}")
    print(f"\nWritten to {args.output}")
    print("Set SEED_FIXTURE_PATH to this file to load it on start-up.")
    print("=" * 70)


if __name__ == "__main__":
    main()
