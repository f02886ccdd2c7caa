#!/usr/bin/env python3
"""
Main CLI entrypoint for receipt splitting.
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from receipt_split.core.assignments import AssignmentError
from receipt_split.core.processor import ReceiptSplitter
from receipt_split.core.utils import env_currency, money_fmt


def _split_labels(raw: str):
    return [label for label in (part.strip() for part in raw.split(",")) if label]


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="receipt-split",
        description="Read receipt line items and split the bill between two people",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Extract items into a sheet, then fill in the category column (me/you/common/ignore)
  receipt-split parse receipt.jpg --out items.csv

  # Settle the filled-in sheet
  receipt-split settle items.csv --pdf split.pdf

  # Both steps at once, categories in item order (m=me, y=you, c=common, i=ignore)
  receipt-split run receipt.pdf --categories m,y,c,c,i
        """
    )
    parser.add_argument("--rules", default=os.getenv("RECEIPT_SPLIT_RULES", "./rules.json"),
                        help="rules.json with extra receipt dialects (default: ./rules.json, or RECEIPT_SPLIT_RULES env var)")
    parser.add_argument("--lang", action="append",
                        help="Tesseract language to try, repeatable (default: fin then eng, or RECEIPT_SPLIT_OCR_LANGS env var)")
    parser.add_argument("--currency", default=env_currency(),
                        help="Currency marker for summaries (default: €, or RECEIPT_SPLIT_CURRENCY env var)")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Show detailed parsing information for debugging")

    sub = parser.add_subparsers(dest="command", required=True)

    p_parse = sub.add_parser("parse", help="Extract line items from a receipt")
    p_parse.add_argument("receipt", help="Receipt image, PDF or text file")
    p_parse.add_argument("--out", default="items.csv",
                         help="Assignment sheet to write (default: items.csv)")
    p_parse.add_argument("--text-out", help="Also save the extracted raw text here")

    p_settle = sub.add_parser("settle", help="Settle a categorized sheet (CSV or JSON)")
    p_settle.add_argument("sheet", help="Filled-in assignment sheet")
    p_settle.add_argument("--json", help="Write the settlement as JSON")
    p_settle.add_argument("--pdf", help="Write a settlement summary PDF")

    p_run = sub.add_parser("run", help="Parse a receipt and settle it in one go")
    p_run.add_argument("receipt", help="Receipt image, PDF or text file")
    p_run.add_argument("--categories", required=True,
                       help="Comma-separated categories in item order (me,you,common,ignore or m,y,c,i)")
    p_run.add_argument("--json", help="Write the settlement as JSON")
    p_run.add_argument("--pdf", help="Write a settlement summary PDF")

    return parser


def _optional_path(value):
    return Path(value) if value else None


def main(argv=None):
    """Main CLI entrypoint."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="  [%(levelname)s] %(name)s: %(message)s",
    )

    rules_path = Path(args.rules)
    if rules_path.exists():
        print(f"[INFO] Using receipt dialects from {rules_path}")

    try:
        splitter = ReceiptSplitter(
            rules_path=rules_path,
            languages=args.lang,
            currency=args.currency,
            verbose=args.verbose,
        )

        if args.command == "parse":
            items = splitter.parse_file(Path(args.receipt),
                                        out_csv=Path(args.out),
                                        text_out=_optional_path(args.text_out))
            for item in items:
                print(f"  {item.name}: {money_fmt(item.price, args.currency)}")
            print(f"[INFO] Fill in the category column of {args.out}, then run: receipt-split settle {args.out}")
            return 0

        if args.command == "settle":
            _, summary = splitter.settle_sheet(Path(args.sheet),
                                               json_out=_optional_path(args.json),
                                               pdf_out=_optional_path(args.pdf))
        else:
            _, summary = splitter.run(Path(args.receipt), _split_labels(args.categories),
                                      json_out=_optional_path(args.json),
                                      pdf_out=_optional_path(args.pdf))
    except (AssignmentError, ValueError, OSError, ImportError) as e:
        print(f"[ERROR] {e}")
        return 1

    print()
    print(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
