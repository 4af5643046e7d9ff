#!/usr/bin/env python3
"""
Format the OpsDesk package with black, then type check it with mypy.
"""
import subprocess
import os
import sys

PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
TARGETS = [os.path.join(PROJECT_ROOT, "opsdesk"), os.path.join(PROJECT_ROOT, "tests")]


def run_tool(name, args):
    print(f"Running {name} on the OpsDesk codebase...")
    try:
        subprocess.run([name, *args], check=True)
        print(f"{name} completed successfully!")
        return 0
    except subprocess.CalledProcessError as e:
        print(f"Error running {name}: {e}")
        return 1


if __name__ == "__main__":
    black_result = run_tool("black", TARGETS)
    mypy_result = run_tool("mypy", [TARGETS[0]])
    sys.exit(black_result or mypy_result)  # Exit with error if either tool failed
