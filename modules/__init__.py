"""
Application Modules.

- core/: Configuration, logging, exceptions, shared utilities
- query/: Query document compilation and response decoding
- cli/: Command-line client (Typer + Rich + httpx)
"""
