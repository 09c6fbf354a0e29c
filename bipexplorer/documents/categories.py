"""
Topic categorization for BIPs.

The served path is a curated number -> tags table. Numbers missing from the
table fall back to a coarse numeric-range rule, so every document gets at
least one tag. The keyword-rule engine in keyword_rules.py is an alternative
strategy selected with CATEGORIZER_STRATEGY.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from bipexplorer.documents.models import Document

GENERAL = "general"

# Curated by hand from the upstream repository; keys are BIP numbers.
BIP_CATEGORIES: dict[int, list[str]] = {
    1: ["governance", "process"],
    2: ["governance", "process", "foundational"],
    8: ["activation", "soft-fork", "versioning"],
    9: ["activation", "soft-fork", "versioning"],
    10: ["multisig", "scripts"],
    11: ["multisig", "scripts", "transactions"],
    12: ["transactions", "opcodes", "scripts"],
    13: ["addresses", "p2sh", "scripts"],
    14: ["network", "versioning"],
    16: ["transactions", "p2sh", "scripts"],
    17: ["scripts", "opcodes"],
    18: ["scripts", "opcodes"],
    19: ["multisig", "scripts"],
    21: ["payments", "uri", "usability"],
    22: ["mining", "rpc", "pools"],
    23: ["mining", "rpc", "pools"],
    30: ["consensus", "blocks", "mining"],
    31: ["network", "transactions"],
    32: ["hd-wallets", "wallets", "derivation"],
    34: ["consensus", "blocks", "validation"],
    35: ["network", "mempool"],
    36: ["network"],
    37: ["network", "addresses"],
    38: ["standards", "process"],
    39: ["wallets", "mnemonics", "backup"],
    42: ["consensus", "validation"],
    43: ["hd-wallets", "wallets", "derivation"],
    44: ["hd-wallets", "wallets", "multi-coin"],
    45: ["multisig", "wallets"],
    47: ["privacy", "transactions"],
    49: ["hd-wallets", "wallets", "derivation"],
    50: ["security", "consensus"],
    60: ["network", "transactions"],
    61: ["network", "transactions"],
    62: ["security", "validation"],
    65: ["time-locks", "scripts", "consensus"],
    66: ["security", "consensus"],
    67: ["multisig", "keys"],
    68: ["sequence", "time-locks", "lightning"],
    69: ["privacy", "addresses"],
    70: ["payments", "transactions"],
    71: ["payments", "contracts"],
    72: ["payments", "uri"],
    73: ["payments", "uri"],
    75: ["security", "signatures"],
    80: ["wallets"],
    81: ["wallets"],
    82: ["wallets"],
    83: ["wallets"],
    84: ["hd-wallets", "wallets", "derivation"],
    85: ["wallets", "derivation"],
    86: ["wallets", "derivation"],
    87: ["wallets", "derivation"],
    88: ["wallets"],
    90: ["consensus"],
    91: ["consensus", "blocks"],
    98: ["consensus"],
    99: ["standards", "process"],
    101: ["consensus", "blocks"],
    102: ["capacity", "blocks"],
    103: ["capacity", "blocks"],
    105: ["capacity", "consensus"],
    106: ["network"],
    109: ["capacity", "consensus"],
    111: ["network"],
    112: ["time-locks", "scripts", "consensus"],
    113: ["sequence", "consensus"],
    114: ["smart-contracts", "lightning"],
    115: ["consensus"],
    116: ["smart-contracts", "scripts"],
    117: ["smart-contracts", "scripts"],
    118: ["smart-contracts", "lightning"],
    119: ["smart-contracts", "scripts"],
    120: ["scripts"],
    121: ["scripts"],
    122: ["standards", "uri"],
    123: ["standards", "process"],
    124: ["wallets"],
    125: ["rbf", "fees", "mempool", "transactions"],
    126: ["standards", "process"],
    127: ["wallets"],
    128: ["wallets"],
    129: ["wallets"],
    130: ["network"],
    132: ["standards", "process"],
    133: ["network"],
    134: ["consensus"],
    135: ["consensus"],
    136: ["transactions"],
    137: ["signatures"],
    138: ["signatures"],
    139: ["signatures"],
    140: ["transactions"],
    141: ["capacity", "segwit", "consensus"],
    142: ["addresses", "segwit", "p2sh"],
    143: ["segwit", "consensus", "validation"],
    144: ["encoding", "segwit"],
    145: ["segwit", "consensus"],
    146: ["security", "validation"],
    147: ["security", "malleability"],
    148: ["segwit", "consensus"],
    150: ["network"],
    151: ["network", "privacy"],
    152: ["network"],
    155: ["network"],
    156: ["network"],
    157: ["network"],
    173: ["encoding", "bech32", "addresses"],
    174: ["psbt", "transactions", "hardware-wallets"],
    175: ["payments"],
    176: ["transactions"],
    178: ["wallets"],
    179: ["transactions"],
    180: ["blocks"],
    197: ["transactions"],
    198: ["contracts"],
    199: ["contracts"],
    200: ["scripts"],
    201: ["scripts"],
    202: ["scripts"],
    203: ["scripts"],
    204: ["scripts"],
    210: ["consensus"],
    211: ["consensus"],
    212: ["consensus"],
    213: ["consensus"],
    214: ["consensus"],
    220: ["transactions"],
    221: ["transactions"],
    270: ["contracts"],
    271: ["contracts"],
    272: ["contracts"],
    300: ["smart-contracts", "contracts"],
    301: ["consensus"],
    310: ["contracts"],
    311: ["contracts"],
    312: ["contracts"],
    313: ["contracts"],
    320: ["consensus"],
    322: ["payments"],
    323: ["payments"],
    324: ["consensus"],
    325: ["consensus"],
    326: ["consensus"],
    327: ["transactions"],
    328: ["wallets"],
    329: ["wallets"],
    330: ["transactions"],
    331: ["transactions"],
    337: ["transactions"],
    338: ["consensus"],
    339: ["transactions"],
    340: ["taproot", "schnorr", "signatures", "privacy"],
    341: ["taproot", "scripts", "smart-contracts"],
    342: ["taproot", "signatures", "validation"],
    343: ["consensus"],
    344: ["consensus"],
    345: ["consensus"],
    346: ["consensus"],
    347: ["consensus"],
    348: ["consensus"],
    349: ["wallets"],
    350: ["encoding", "bech32"],
    351: ["wallets"],
    352: ["bech32", "addresses"],
    353: ["wallets"],
    354: ["wallets"],
    355: ["wallets"],
    360: ["consensus"],
    361: ["consensus"],
    362: ["consensus"],
    363: ["consensus"],
    364: ["consensus"],
    365: ["consensus"],
    366: ["consensus"],
    367: ["consensus"],
    368: ["consensus"],
    369: ["wallets"],
    370: ["psbt", "transactions"],
    371: ["psbt", "transactions"],
    372: ["transactions"],
    373: ["wallets"],
    374: ["wallets"],
    375: ["wallets"],
    376: ["wallets"],
    377: ["wallets"],
    378: ["wallets"],
    379: ["wallets"],
    380: ["encoding"],
    381: ["encoding"],
    382: ["wallets"],
    383: ["wallets"],
    384: ["wallets"],
    385: ["wallets"],
    386: ["transactions"],
    387: ["transactions"],
    388: ["wallets"],
    389: ["wallets"],
}


class CategoryGroup(str, Enum):
    PROCESS_GOVERNANCE = "Process & Governance"
    TECHNICAL_LAYERS = "Technical Layers"
    TRANSACTION_SCRIPT = "Transactions & Scripts"
    WALLET_KEYS = "Wallets & Keys"
    ADDRESS_ENCODING = "Addresses & Encoding"
    ADVANCED_FEATURES = "Advanced Features"
    TIME_CONSTRAINTS = "Time & Constraints"
    NETWORK_INFRASTRUCTURE = "Network Infrastructure"
    USER_EXPERIENCE = "User Experience"
    SECURITY_PRIVACY = "Security & Privacy"
    INFRASTRUCTURE = "Infrastructure"
    APPLICATIONS = "Applications"
    MULTI_ASSET = "Multi-Asset"
    DEVELOPMENT = "Development"


@dataclass(frozen=True)
class CategoryDefinition:
    id: str
    name: str
    description: str
    group: CategoryGroup

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "group": self.group.value,
        }


def _defs(group: CategoryGroup, *entries: tuple[str, str, str]) -> dict[str, CategoryDefinition]:
    return {
        tag: CategoryDefinition(id=tag, name=name, description=description, group=group)
        for tag, name, description in entries
    }


CATEGORY_DEFINITIONS: dict[str, CategoryDefinition] = {
    **_defs(
        CategoryGroup.PROCESS_GOVERNANCE,
        ("governance", "Governance", "BIPs that establish rules for Bitcoin development"),
        ("process", "Process", "BIPs that define procedures and workflows"),
        ("activation", "Activation", "Soft fork activation mechanisms"),
    ),
    **_defs(
        CategoryGroup.TECHNICAL_LAYERS,
        ("consensus", "Consensus", "Changes to consensus rules"),
        ("network", "Network", "P2P network protocol changes"),
        ("rpc", "RPC", "API/RPC interface specifications"),
    ),
    **_defs(
        CategoryGroup.TRANSACTION_SCRIPT,
        ("transactions", "Transactions", "Transaction format and validation"),
        ("scripts", "Scripts", "Script language and opcodes"),
        ("multisig", "Multi-Signature", "Multi-signature functionality"),
        ("p2sh", "P2SH", "Pay-to-Script-Hash related"),
    ),
    **_defs(
        CategoryGroup.WALLET_KEYS,
        ("wallets", "Wallets", "Wallet standards and formats"),
        ("keys", "Keys", "Key generation and management"),
        ("hd-wallets", "HD Wallets", "Hierarchical Deterministic wallets"),
        ("derivation", "Key Derivation", "Key derivation methods"),
        ("mnemonics", "Mnemonics", "Mnemonic seed phrases"),
        ("backup", "Backup", "Backup and recovery mechanisms"),
    ),
    **_defs(
        CategoryGroup.ADDRESS_ENCODING,
        ("addresses", "Addresses", "Address formats"),
        ("encoding", "Encoding", "Encoding schemes"),
        ("bech32", "Bech32", "Bech32 address format"),
    ),
    **_defs(
        CategoryGroup.ADVANCED_FEATURES,
        ("segwit", "SegWit", "Segregated Witness related"),
        ("taproot", "Taproot", "Taproot upgrade"),
        ("schnorr", "Schnorr", "Schnorr signatures"),
        ("signatures", "Signatures", "Signature schemes"),
    ),
    **_defs(
        CategoryGroup.TIME_CONSTRAINTS,
        ("time-locks", "Time Locks", "Time-based constraints"),
        ("sequence", "Sequence", "Sequence number usage"),
    ),
    **_defs(
        CategoryGroup.NETWORK_INFRASTRUCTURE,
        ("mining", "Mining", "Mining-related protocols"),
        ("pools", "Mining Pools", "Mining pool coordination"),
        ("fees", "Fees", "Fee mechanisms"),
        ("mempool", "Mempool", "Memory pool policies"),
    ),
    **_defs(
        CategoryGroup.USER_EXPERIENCE,
        ("usability", "Usability", "User experience improvements"),
        ("uri", "URI Schemes", "URI schemes"),
        ("payments", "Payments", "Payment protocols"),
    ),
    **_defs(
        CategoryGroup.SECURITY_PRIVACY,
        ("security", "Security", "Security improvements"),
        ("privacy", "Privacy", "Privacy enhancements"),
        ("malleability", "Malleability", "Transaction malleability fixes"),
    ),
    **_defs(
        CategoryGroup.INFRASTRUCTURE,
        ("foundational", "Foundational", "Core foundational BIPs"),
        ("improvement", "Improvement", "Process improvements"),
        ("standards", "Standards", "Standard definitions"),
        ("versioning", "Versioning", "Version management"),
        (GENERAL, "General", "BIPs without a more specific topic"),
    ),
    **_defs(
        CategoryGroup.APPLICATIONS,
        ("lightning", "Lightning", "Lightning Network enablers"),
        ("contracts", "Contracts", "Smart contracts"),
        ("smart-contracts", "Smart Contracts", "Advanced contract capabilities"),
        ("psbt", "PSBT", "Partially Signed Bitcoin Transactions"),
        ("hardware-wallets", "Hardware Wallets", "Hardware wallet support"),
    ),
    **_defs(
        CategoryGroup.MULTI_ASSET,
        ("multi-coin", "Multi-Coin", "Multi-cryptocurrency support"),
    ),
    **_defs(
        CategoryGroup.DEVELOPMENT,
        ("opcodes", "Opcodes", "New opcodes"),
        ("soft-fork", "Soft Fork", "Soft fork mechanisms"),
        ("capacity", "Capacity", "Capacity improvements"),
        ("blocks", "Blocks", "Block structure changes"),
        ("validation", "Validation", "Validation improvements"),
        ("rbf", "RBF", "Replace-by-Fee"),
        ("decentralization", "Decentralization", "Decentralization improvements"),
    ),
}


def range_fallback(number: int) -> list[str]:
    """Single coarse tag for numbers missing from the curated table."""
    if number <= 2:
        return ["governance"]
    if number <= 50:
        return ["consensus"]
    if number <= 100:
        return ["wallets"]
    if number <= 200:
        return ["transactions"]
    return [GENERAL]


def categories_for_number(number: int) -> list[str]:
    tags = BIP_CATEGORIES.get(number)
    if tags:
        return list(tags)
    return range_fallback(number)


def categorize(document: Document) -> list[str]:
    """
    Tags for a document: the curated entry if there is one, else the range rule.

    Pure and deterministic; never returns an empty list.
    """
    return categories_for_number(document.number)


def categorization_coverage(documents: Iterable[Document]) -> dict[str, Any]:
    """
    Coverage report over a document set.

    Returns:
        Dict with totalBips, categorizedBips, uncategorizedBips,
        averageCategoriesPerBip and categoryUsage (tag -> document count)
    """
    usage: Counter[str] = Counter()
    total = 0
    categorized = 0
    tag_total = 0

    for doc in documents:
        total += 1
        if doc.categories:
            categorized += 1
            tag_total += len(doc.categories)
            usage.update(doc.categories)

    return {
        "totalBips": total,
        "categorizedBips": categorized,
        "uncategorizedBips": total - categorized,
        "averageCategoriesPerBip": tag_total / categorized if categorized else 0.0,
        "categoryUsage": dict(usage.most_common()),
    }
