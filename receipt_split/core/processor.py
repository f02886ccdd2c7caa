"""
Main receipt splitting orchestration.
"""

from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .assignments import read_categorized, write_items_csv, write_settlement_json
from .dialects import load_dialects
from .models import Category, LineItem, SettlementResult
from .ocr import extract_text
from .parsers import parse_receipt, placeholder_items
from .reporting import build_settlement_pdf
from .settlement import format_summary, settle, split
from .utils import DEFAULT_CURRENCY, money_fmt


class ReceiptSplitter:
    """Runs receipt text extraction, item parsing and settlement for the CLI."""

    def __init__(self, rules_path: Optional[Path] = None,
                 languages: Optional[Sequence[str]] = None,
                 currency: str = DEFAULT_CURRENCY,
                 verbose: bool = False):
        """
        Initialize receipt splitter.

        Args:
            rules_path: Path to rules.json with extra receipt dialects
            languages: Tesseract languages to try in order (default: fin, eng)
            currency: Currency marker used in summaries
            verbose: Whether to show verbose debugging output
        """
        self.rules_path = rules_path
        self.languages = languages
        self.currency = currency
        self.verbose = verbose
        self.dialects = load_dialects(rules_path)

    def _progress(self, fraction: float):
        if self.verbose:
            print(f"  [DEBUG] Reading receipt... {round(fraction * 100)}%")

    def read_text(self, path: Path) -> str:
        """Get raw receipt text from an image, PDF or text file."""
        print(f"[INFO] Reading {path.name}")
        text = extract_text(path, languages=self.languages, progress=self._progress)
        if self.verbose:
            print("  [DEBUG] First 5 lines of text:")
            for i, line in enumerate(text.splitlines()[:5], 1):
                print(f"    {i}: {line[:80]}")
        return text

    def parse_text(self, text: str) -> List[LineItem]:
        """Parse items, falling back to a single placeholder item for manual entry."""
        items = parse_receipt(text, self.dialects)
        if not items:
            print("[WARN] No items found. Please fill in the items manually.")
            return placeholder_items()
        print(f"[OK] Found {len(items)} item(s)")
        if self.verbose:
            for item in items:
                print(f"  [DEBUG] {money_fmt(item.price, self.currency):>12}  {item.name}")
        return items

    def parse_file(self, path: Path, out_csv: Optional[Path] = None,
                   text_out: Optional[Path] = None) -> List[LineItem]:
        """
        Parse one receipt file into items.

        Args:
            path: Receipt image, PDF or text file
            out_csv: Where to write the assignment sheet (optional)
            text_out: Where to save the extracted raw text (optional)

        Returns:
            Parsed items (a placeholder item when nothing was recognised)
        """
        text = self.read_text(path)
        if text_out is not None:
            text_out.write_text(text, encoding="utf-8")
            print(f"[OK] Wrote {text_out}")

        items = self.parse_text(text)
        if out_csv is not None:
            write_items_csv(items, out_csv)
            print(f"[OK] Wrote {out_csv}")
        return items

    def report(self, result: SettlementResult, json_out: Optional[Path] = None,
               pdf_out: Optional[Path] = None) -> str:
        """Write optional JSON/PDF outputs and return the summary text."""
        if json_out is not None:
            write_settlement_json(result, json_out)
            print(f"[OK] Wrote {json_out}")
        if pdf_out is not None:
            build_settlement_pdf(result, pdf_out, currency=self.currency)
            print(f"[OK] Wrote {pdf_out}")
        return format_summary(result, currency=self.currency)

    def settle_sheet(self, sheet: Path, json_out: Optional[Path] = None,
                     pdf_out: Optional[Path] = None) -> Tuple[SettlementResult, str]:
        """Settle a filled-in assignment sheet."""
        entries = read_categorized(sheet)
        print(f"[INFO] Read {len(entries)} categorized item(s) from {sheet.name}")
        result = split(entries)
        return result, self.report(result, json_out, pdf_out)

    def run(self, path: Path, labels: Sequence[str],
            json_out: Optional[Path] = None,
            pdf_out: Optional[Path] = None) -> Tuple[SettlementResult, str]:
        """Parse a receipt and settle it with categories given in item order."""
        items = self.parse_file(path)
        categories = [Category.from_label(label) for label in labels]
        result = settle(items, categories)
        return result, self.report(result, json_out, pdf_out)
