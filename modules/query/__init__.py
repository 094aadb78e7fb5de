"""
Query compilation and result decoding.

- filters.py: --filter / --sort term parsing
- timespec.py: duration helpers (1d, 2w, ...)
- timerange.py: --time / --age resolution
- builder.py: query document compilation
- crdb.py: run-length-encoded columnar response decoding
"""
