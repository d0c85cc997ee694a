"""
Security Bulletin Classifier

Derives architecture, product, KB number and related labels from the free-text
titles and filenames of the security bulletin repository. The rule tables are
heuristic and their order matters.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .models import Classification

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rule:
    """Assigns value when the title (and optionally filename) contains terms"""
    value: str
    terms: Tuple[str, ...]
    require_all: bool = True
    include_filename: bool = False
    ignore_case: bool = False

    def matches(self, title: str, filename: str = "") -> bool:
        haystacks = [title, filename] if self.include_filename else [title]
        if self.ignore_case:
            haystacks = [text.lower() for text in haystacks]

        def _found(term: str) -> bool:
            needle = term.lower() if self.ignore_case else term
            return any(needle in text for text in haystacks)

        check = all if self.require_all else any
        return check(_found(term) for term in self.terms)


def _arch(value: str, *terms: str) -> Rule:
    return Rule(value, terms, require_all=False, include_filename=True, ignore_case=True)


# First matching rule wins
ARCHITECTURE_RULES: Tuple[Rule, ...] = (
    _arch("x64", "x64", "-x64_", "64-bit"),
    _arch("arm64", "arm64", "-arm64_"),
    _arch("x86", "x86", "-x86_", "32-bit"),
)

WINDOWS_10_VERSIONS = (
    "1507", "1607", "1703", "1709", "1803", "1809", "1903", "1909",
    "2004", "20H2", "21H1", "21H2",
)

# Phrases, never bare years: titles open with a "Month Year" date and carry KB digits
WINDOWS_SERVER_RELEASES = (
    ("Server 2008", "Windows Server 2008"),
    ("Server 2008 R2", "Windows Server 2008 R2"),
    ("Server 2012", "Windows Server 2012"),
    ("Server 2012 R2", "Windows Server 2012 R2"),
    ("Server 2016", "Windows Server 2016"),
    ("Server 2019", "Windows Server 2019"),
    ("Server 2022", "Windows Server 2022"),
    ("version 1909", "Windows Server Version 1909"),
    ("version 2004", "Windows Server Version 2004"),
    ("version 20H2", "Windows Server Version 20H2"),
)

# Broad rules first: within a table the last matching rule wins
OS_PRODUCT_RULES: Tuple[Rule, ...] = (
    Rule("Windows 7", ("Windows 7",)),
    Rule("Windows 8.1", ("Windows 8.1",)),
    Rule("Windows 10", ("Windows 10",)),
    *(Rule(f"Windows 10 Version {version}", ("Windows 10", f"Version {version}"))
      for version in WINDOWS_10_VERSIONS),
    Rule("Windows 11", ("Windows 11",)),
    Rule("Windows Server", ("Windows Server",)),
    *(Rule(product, ("Windows Server", token)) for token, product in WINDOWS_SERVER_RELEASES),
)

APPLICATION_PRODUCT_RULES: Tuple[Rule, ...] = (
    Rule(".NET", (".NET",)),
    Rule(".NET Core", (".NET Core",)),
    Rule("Excel", ("Excel",)),
    Rule("SharePoint", ("SharePoint",)),
    Rule("Word", ("Word",)),
    Rule("Office", ("Office",)),
    Rule("Edge", ("Edge",)),
    Rule("Malicious Software Removal Tool", ("Malicious Software Removal Tool",)),
    Rule("Exchange", ("Exchange",)),
    Rule("Azure Stack", ("Azure Stack",)),
)

_KB_PATTERN = re.compile(r'\(KB([^)]*)\)')


class Classifier:
    """Applies the bulletin rule tables to a title/filename pair"""

    def __init__(self, architecture_rules: Sequence[Rule] = ARCHITECTURE_RULES,
                 product_tables: Sequence[Sequence[Rule]] = (OS_PRODUCT_RULES, APPLICATION_PRODUCT_RULES)):
        self.architecture_rules = tuple(architecture_rules)
        self.product_tables = tuple(tuple(table) for table in product_tables)

    def classify_architecture(self, title: str, filename: str = "") -> Optional[str]:
        for rule in self.architecture_rules:
            if rule.matches(title, filename):
                return rule.value
        return None

    def classify_product(self, title: str) -> Optional[str]:
        """Last match of the first table that matches at all"""
        for table in self.product_tables:
            product = None
            for rule in table:
                if rule.matches(title):
                    product = rule.value
            if product is not None:
                return product
        return None

    @staticmethod
    def extract_kb(title: str) -> Optional[str]:
        """The digits (and dots) inside '(KB...)', if the title carries one"""
        if "KB" not in title:
            return None
        match = _KB_PATTERN.search(title)
        if not match:
            return None
        kb = match.group(1)
        if kb and all(ch.isdigit() or ch == "." for ch in kb):
            return kb
        return None

    @staticmethod
    def extract_guid(filename: str) -> Optional[str]:
        """Label after the filename's last underscore, up to the first dot"""
        if not filename or "_" not in filename:
            return None
        label = filename.rsplit("_", 1)[1].split(".", 1)[0]
        return label or None

    @staticmethod
    def split_title(title: str, kb: Optional[str] = None) -> Tuple[Optional[str], str]:
        """
        Split off the leading date token and the '(KB...)' suffix

        Only the first token is removed; the year that follows it stays in
        the clean title.

        Returns:
            (date token, clean title)
        """
        parts = title.strip().split(None, 1)
        if not parts:
            return None, ""

        disa_date = parts[0]
        clean = parts[1] if len(parts) > 1 else ""
        if kb:
            clean = clean.replace(f" (KB{kb})", "")
        return disa_date, clean.strip()

    def classify(self, title: str, filename: str = "") -> Classification:
        kb = self.extract_kb(title)
        disa_date, clean_title = self.split_title(title, kb)

        result = Classification(
            clean_title=clean_title,
            architecture=self.classify_architecture(title, filename),
            product=self.classify_product(title),
            kb=kb,
            guid=self.extract_guid(filename),
            disa_date=disa_date
        )
        logger.debug(f"Classified '{title}' as {result}")
        return result
