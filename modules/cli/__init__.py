"""
CLI Client Module.

Command-line client built with Typer for querying the crash-analytics
service.

Architecture:
- CLI is a thin presentation layer over modules/query
- Query documents are compiled locally and POSTed via HTTP (httpx)
- Responses are decoded by modules/query/crdb.py and printed with Rich

Usage:
    python cli.py --help
    python cli.py query list acme/game --age 1d
    python cli.py query describe acme/game
"""
