"""
Entry point for `python -m signable`.

Usage:
    python -m signable render "Lease Agreement" body.md -o lease.pdf
    python -m signable send DOC_ID --landlord "Ann Lee:ann@example.com"
    python -m signable status DOC_ID
"""

from .ui.cli import main

main()
