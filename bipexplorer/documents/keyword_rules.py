"""
Keyword-rule categorizer.

Each rule tags a document when its number is listed explicitly, or when one of
its keywords appears in the title, abstract or content. Rules carrying a type
condition only fire on keyword hits for documents of that type. Documents no
rule matches get the same numeric-range fallback as the curated table.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from bipexplorer.documents.categories import range_fallback
from bipexplorer.documents.models import BipType

if TYPE_CHECKING:
    from bipexplorer.documents.models import Document


@dataclass(frozen=True)
class KeywordRule:
    categories: tuple[str, ...]
    keywords: tuple[str, ...] = ()
    abstract_keywords: tuple[str, ...] = ()
    numbers: tuple[int, ...] = ()
    required_type: BipType | None = None

    def matches(self, document: Document, text: str, abstract: str) -> bool:
        if document.number in self.numbers:
            return True
        if self.required_type is not None and document.type != self.required_type.value:
            return False
        if any(keyword in text for keyword in self.keywords):
            return True
        return any(keyword in abstract for keyword in self.abstract_keywords)


KEYWORD_RULES: tuple[KeywordRule, ...] = (
    # Process & governance
    KeywordRule(("governance", "foundational"), ("bip purpose", "guidelines"), numbers=(1,)),
    KeywordRule(("process", "improvement"), ("bip process", "workflow"), numbers=(2,)),
    KeywordRule(
        ("activation", "soft-fork", "versioning"),
        ("version bits", "deployment"),
        numbers=(8, 9),
    ),
    # Consensus
    KeywordRule(
        ("consensus", "validation", "blocks"),
        ("coinbase", "block version"),
        numbers=(30, 34),
    ),
    KeywordRule(
        ("consensus", "scripts", "time-locks"),
        ("checklocktimeverify", "checksequenceverify", "timelock", "cltv"),
        numbers=(65, 112),
    ),
    # Transactions & scripts
    KeywordRule(("transactions", "multisig", "security"), ("multi-signature", "m-of-n"), numbers=(11,)),
    KeywordRule(("transactions", "p2sh", "scripts"), ("pay-to-script-hash", "p2sh"), numbers=(13, 16)),
    KeywordRule(
        ("transactions", "fees", "rbf", "mempool"),
        ("replace-by-fee", "fee replacement"),
        numbers=(125,),
    ),
    KeywordRule(
        ("transactions", "psbt", "hardware-wallets"),
        ("psbt", "partially signed"),
        numbers=(174,),
    ),
    # Wallets & keys
    KeywordRule(
        ("wallets", "keys", "hd-wallets", "derivation"),
        ("hierarchical deterministic", "hd wallet", "key derivation", "extended key"),
        numbers=(32,),
    ),
    KeywordRule(
        ("wallets", "mnemonics", "backup", "usability"),
        ("mnemonic", "seed phrase"),
        numbers=(39,),
    ),
    KeywordRule(
        ("wallets", "hd-wallets", "standards", "derivation"),
        ("purpose field", "derivation path"),
        numbers=(43, 44),
    ),
    # Addresses & encoding
    KeywordRule(
        ("addresses", "encoding", "bech32", "segwit"),
        ("bech32", "native segwit", "witness program"),
        numbers=(173,),
    ),
    KeywordRule(("addresses", "p2sh"), ("address format", "base58check"), numbers=(13,)),
    # Advanced features
    KeywordRule(
        ("segwit", "consensus", "capacity", "malleability"),
        ("segregated witness", "witness data", "transaction malleability"),
        numbers=(141,),
    ),
    KeywordRule(
        ("taproot", "schnorr", "signatures", "privacy", "smart-contracts"),
        ("taproot", "schnorr", "tapscript"),
        numbers=(340, 341, 342),
    ),
    # Network & infrastructure
    KeywordRule(("network", "versioning"), ("user agent", "version message"), numbers=(14,)),
    KeywordRule(
        ("mining", "rpc", "pools", "decentralization"),
        ("getblocktemplate", "pooled mining"),
        numbers=(22, 23),
    ),
    # User experience
    KeywordRule(("usability", "uri", "payments"), ("uri scheme", "payment request"), numbers=(21,)),
    KeywordRule(
        ("sequence", "time-locks", "lightning"),
        ("relative lock-time", "sequence numbers"),
        numbers=(68,),
    ),
    # Generic content patterns
    KeywordRule(
        ("consensus",),
        ("consensus rule", "soft fork", "block validation", "transaction validation"),
        required_type=BipType.STANDARDS_TRACK,
    ),
    KeywordRule(("wallets",), ("wallet", "private key", "public key"), ("wallet",)),
    KeywordRule(
        ("network",),
        ("peer-to-peer", "p2p", "network protocol"),
        required_type=BipType.STANDARDS_TRACK,
    ),
    KeywordRule(("scripts",), ("opcode", "op_"), ("script",)),
    KeywordRule(("signatures",), ("signature", "ecdsa"), ("signature",)),
    KeywordRule(("encoding",), ("encoding", "serialization"), ("encoding",)),
    KeywordRule(("addresses",), ("address",), ("address",)),
    KeywordRule(("fees",), ("transaction fee", "fee rate"), ("fee",)),
    KeywordRule(("privacy",), ("privacy", "anonymous", "confidential", "mixing"), ("privacy",)),
    KeywordRule(("security",), ("vulnerability", "malleability"), ("security",)),
    KeywordRule(("lightning",), ("lightning", "payment channel", "layer 2"), ("lightning",)),
)


def categorize_by_keywords(document: Document) -> list[str]:
    """
    Tag a document by scanning its text against KEYWORD_RULES.

    Returns:
        Sorted, de-duplicated tags; the range fallback when no rule matches
    """
    text = f"{document.title} {document.abstract} {document.content}".lower()
    abstract = document.abstract.lower()

    tags: set[str] = set()
    for rule in KEYWORD_RULES:
        if rule.matches(document, text, abstract):
            tags.update(rule.categories)

    if not tags:
        return range_fallback(document.number)
    return sorted(tags)
