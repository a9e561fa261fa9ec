#!/usr/bin/env python
"""Command-line entry point for the education platform (``eduplatform.settings``)."""
import os
import sys


def main() -> None:
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'eduplatform.settings')
    try:
        from django.core.management import execute_from_command_line
    except ImportError as exc:
        raise ImportError("Django is not installed; run `pip install -e .[test]` first.") from exc
    execute_from_command_line(sys.argv)


if __name__ == '__main__':
    main()
