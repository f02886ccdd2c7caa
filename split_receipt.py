#!/usr/bin/env python3
"""
split_receipt.py
Split a shared shopping receipt between two people:
- reads the receipt text (Tesseract OCR for images, PyMuPDF for PDFs)
- extracts the line items into a sheet you categorize (me/you/common/ignore)
- prints who owes what, optionally as JSON or a summary PDF

Usage:
   python split_receipt.py parse receipt.jpg --out items.csv
   python split_receipt.py settle items.csv

Requires: Python 3.9+, Tesseract OCR (binary, with Finnish language data), plus the
Python packages listed in pyproject.toml
"""

import sys

from receipt_split.cli.main import main

if __name__ == "__main__":
    sys.exit(main())
