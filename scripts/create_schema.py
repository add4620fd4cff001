#!/usr/bin/env python3
"""Create the course and score tables if they do not exist yet."""

from scoreboard.db import ensure_schema
from scoreboard.settings import load_settings


def main() -> None:
    settings = load_settings()
    ensure_schema(settings.database_url)
    print("Schema ensured.")
    print(f"Database url: {settings.database_url}")


if __name__ == "__main__":
    main()
