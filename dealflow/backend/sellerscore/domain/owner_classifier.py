# sellerscore/domain/owner_classifier.py
"""
Owner classification from noisy owner-name text.

Entity patterns are grouped into priority tiers. The first tier (in
PATTERN_TIERS order) with any match wins; inside a tier the highest pattern
confidence wins. Only when nothing matches do we fall back to the individual
heuristics (occupancy, mailing state, heir markers).
"""
from __future__ import annotations

import re
from dataclasses import dataclass, replace

from .address import normalize_state
from .types import OwnerClassification, OwnerPrimaryClass, OwnerSubClass, PropertyFacts

P = OwnerPrimaryClass
S = OwnerSubClass

# Confidence tiers for the fallback path
BLANK_NAME_CONFIDENCE = 0.40
INDIVIDUAL_BASE_CONFIDENCE = 0.70
INVESTOR_NAME_CONFIDENCE = 0.60
CONFIDENCE_CEILING = 0.95

_UNINFORMATIVE_NAMES = {"", "UNKNOWN", "UNKNOWN OWNER", "N/A", "NA", "NONE", "CURRENT OWNER", "OWNER"}


@dataclass(frozen=True)
class EntityPattern:
    pattern: re.Pattern[str]
    primary_class: OwnerPrimaryClass
    sub_class: OwnerSubClass
    confidence: float
    name: str


def _p(regex: str, primary: OwnerPrimaryClass, sub: OwnerSubClass, confidence: float, name: str) -> EntityPattern:
    return EntityPattern(re.compile(regex, re.IGNORECASE), primary, sub, confidence, name)


BANK_PATTERNS: tuple[EntityPattern, ...] = (
    _p(r"\b(BANK\s+OF\s+AMERICA|BOA)\b", P.institutional_distressed, S.bank_reo, 0.95, "Bank of America"),
    _p(r"\bWELLS\s+FARGO\b", P.institutional_distressed, S.bank_reo, 0.95, "Wells Fargo"),
    _p(r"\b(JPMORGAN|JP\s+MORGAN|CHASE\s+BANK)\b", P.institutional_distressed, S.bank_reo, 0.95, "JPMorgan Chase"),
    _p(r"\b(CITIBANK|CITIGROUP|CITI\s+MORTGAGE)\b", P.institutional_distressed, S.bank_reo, 0.95, "Citibank"),
    _p(r"\bU\.?\s?S\.?\s+BANK\b", P.institutional_distressed, S.bank_reo, 0.95, "US Bank"),
    _p(r"\bPNC\s+BANK\b", P.institutional_distressed, S.bank_reo, 0.95, "PNC Bank"),
    _p(r"\b(TRUST\s*BANK|TRUSTMARK)\b", P.institutional_distressed, S.bank_reo, 0.90, "Trust Bank"),
    _p(r"\b(NATIONSTAR|MR\.?\s*COOPER)\b", P.institutional_distressed, S.bank_reo, 0.90, "Mr. Cooper/Nationstar"),
    _p(r"\b(OCWEN|PHH\s+MORTGAGE)\b", P.institutional_distressed, S.bank_reo, 0.90, "Ocwen/PHH"),
    _p(r"\bSELENE\s+FINANCE\b", P.institutional_distressed, S.bank_reo, 0.90, "Selene Finance"),
    _p(r"\bCARRINGTON\s+MORTGAGE\b", P.institutional_distressed, S.bank_reo, 0.90, "Carrington"),
    _p(r"\bDITECH\b", P.institutional_distressed, S.bank_reo, 0.90, "Ditech"),
    _p(r"\bBANK\s+N\.?\s?A\b\.?", P.institutional_distressed, S.bank_reo, 0.85, "Generic Bank NA"),
    _p(r"\b(FEDERAL\s+)?SAVINGS\s+(BANK|ASSOC)", P.institutional_distressed, S.bank_reo, 0.85, "Savings Bank"),
    _p(r"\bCREDIT\s+UNION\b", P.institutional_distressed, S.bank_reo, 0.80, "Credit Union"),
    _p(r"\bMORTGAGE\s+(CORP|COMPANY|CO\.?|INC)\b", P.institutional_distressed, S.bank_reo, 0.75, "Mortgage Company"),
)

GOVERNMENT_PATTERNS: tuple[EntityPattern, ...] = (
    _p(r"\b(HUD|HOUSING\s+AND\s+URBAN\s+DEVELOPMENT)\b", P.institutional_distressed, S.government_federal, 0.95, "HUD"),
    _p(r"\b(VETERANS?\s+AFFAIRS?|VETERANS?\s+ADMIN)", P.institutional_distressed, S.government_federal, 0.95, "VA"),
    _p(r"\b(FHA|FEDERAL\s+HOUSING)\b", P.institutional_distressed, S.government_federal, 0.95, "FHA"),
    _p(r"\b(FANNIE\s+MAE|FNMA)\b", P.institutional_distressed, S.government_federal, 0.95, "Fannie Mae"),
    _p(r"\b(FREDDIE\s+MAC|FHLMC)\b", P.institutional_distressed, S.government_federal, 0.95, "Freddie Mac"),
    _p(r"\bUNITED\s+STATES\s+(OF\s+AMERICA\b|GOVERNMENT\b)", P.institutional_distressed, S.government_federal, 0.95, "US Government"),
    _p(r"\bSTATE\s+OF\s+\w+", P.institutional_distressed, S.government_state, 0.85, "State Government"),
    _p(r"\b\w+\s+STATE\s+(HOUSING|DEVELOPMENT|FINANCE)\b", P.institutional_distressed, S.government_state, 0.85, "State Housing Agency"),
    _p(r"\bCOUNTY\s+OF\s+\w+", P.institutional_distressed, S.government_local, 0.85, "County Government"),
    _p(r"\bCITY\s+OF\s+\w+", P.institutional_distressed, S.government_local, 0.85, "City Government"),
    _p(r"\b(HOUSING|REDEVELOPMENT)\s+AUTHORITY\b", P.institutional_distressed, S.government_local, 0.80, "Housing Authority"),
    _p(r"\bLAND\s+BANK\b", P.institutional_distressed, S.government_local, 0.80, "Land Bank"),
    _p(r"\bMUNICIPAL(ITY)?\b", P.institutional_distressed, S.government_local, 0.75, "Municipality"),
)

TAX_LIEN_PATTERNS: tuple[EntityPattern, ...] = (
    _p(r"\bTAX\s+(LIEN|SALE|DEED)\b", P.institutional_distressed, S.tax_lien, 0.90, "Tax Lien/Sale"),
    _p(r"\bTAX\s+COLLECTOR\b", P.institutional_distressed, S.tax_lien, 0.90, "Tax Collector"),
    _p(r"\bTREASURER\s+(OF|FOR)\b", P.institutional_distressed, S.tax_lien, 0.80, "Treasurer"),
)

ESTATE_PATTERNS: tuple[EntityPattern, ...] = (
    _p(r"\bESTATE\s+OF\s+\w+", P.institutional_distressed, S.estate_probate, 0.90, "Estate Of"),
    _p(r"\bTRUST\s+(UNDER\s+)?WILL\b", P.institutional_distressed, S.estate_probate, 0.85, "Trust Under Will"),
    _p(r"\bTESTAMENTARY\s+TRUST\b", P.institutional_distressed, S.estate_probate, 0.85, "Testamentary Trust"),
    _p(r"\bDECEASED\b|\bDEC'?D\b", P.institutional_distressed, S.estate_probate, 0.90, "Deceased Owner"),
    _p(r"\b(EXECUTOR|EXECUTRIX)\b", P.institutional_distressed, S.estate_executor, 0.90, "Executor"),
    _p(r"\bPERSONAL\s+REP(RESENTATIVE)?\b", P.institutional_distressed, S.estate_executor, 0.85, "Personal Representative"),
    _p(r"\b(ADMINISTRATOR|ADMINISTRATRIX)\b", P.institutional_distressed, S.estate_executor, 0.85, "Administrator"),
)

# Living/family trusts are estate-planning wrappers around a natural person,
# so they are scored with the individual model.
TRUST_PATTERNS: tuple[EntityPattern, ...] = (
    _p(r"\bIRREVOCABLE\s+TRUST\b", P.investor_entity, S.trust_irrevocable, 0.85, "Irrevocable Trust"),
    _p(r"\b(REVOCABLE|LIVING|FAMILY)\s+TRUST\b", P.individual, S.trust_living, 0.85, "Living Trust"),
    _p(r"\bTRUST(EE)?\s*$", P.individual, S.trust_living, 0.70, "Generic Trust"),
    _p(r"\b\w+\s+TRUST\b", P.individual, S.trust_living, 0.65, "Named Trust"),
)

CORPORATE_PATTERNS: tuple[EntityPattern, ...] = (
    _p(r"\bL\.?\s?L\.?\s?C\.?\s*$", P.investor_entity, S.llc_single, 0.85, "LLC Suffix"),
    _p(r"\bLIMITED\s+LIABILITY\s+(COMPANY|CO\b\.?)", P.investor_entity, S.llc_single, 0.85, "LLC Full"),
    _p(r"\bINC\b\.?\s*$", P.investor_entity, S.corporate, 0.80, "Inc Suffix"),
    _p(r"\bCORP\b\.?\s*$", P.investor_entity, S.corporate, 0.80, "Corp Suffix"),
    _p(r"\bCORPORATION\s*$", P.investor_entity, S.corporate, 0.80, "Corporation"),
    _p(r"\b(COMPANY|CO\b\.?)\s*$", P.investor_entity, S.corporate, 0.70, "Company"),
    _p(r"\bL\.?\s?P\b\.?\s*$", P.investor_entity, S.corporate, 0.75, "LP Suffix"),
    _p(r"\bLIMITED\s+PARTNERSHIP\b", P.investor_entity, S.corporate, 0.75, "Limited Partnership"),
)

INVESTOR_INDICATOR_PATTERNS: tuple[EntityPattern, ...] = (
    _p(r"\bPROPERT(Y|IES)\s*(INVEST|MGMT|MANAGEMENT)", P.investor_entity, S.portfolio_investor, 0.90, "Property Investment"),
    _p(r"\bREAL\s*(TY|ESTATE)\s*(INVEST|HOLDINGS)", P.investor_entity, S.portfolio_investor, 0.90, "Real Estate Investment"),
    _p(r"\bHOLDINGS?\b", P.investor_entity, S.portfolio_investor, 0.70, "Holdings"),
    _p(r"\bINVESTMENTS?\b", P.investor_entity, S.portfolio_investor, 0.70, "Investments"),
    _p(r"\bACQUISITIONS?\b", P.investor_entity, S.portfolio_investor, 0.70, "Acquisitions"),
    _p(r"\bRENTALS?\b", P.investor_entity, S.small_investor, 0.75, "Rentals"),
    _p(r"\bVENTURES?\b", P.investor_entity, S.portfolio_investor, 0.65, "Ventures"),
    _p(r"\bCAPITAL\b", P.investor_entity, S.portfolio_investor, 0.65, "Capital"),
    _p(r"\bGROUP\b", P.investor_entity, S.portfolio_investor, 0.60, "Group"),
    _p(r"\bENTERPRISES?\b", P.investor_entity, S.portfolio_investor, 0.60, "Enterprises"),
)

# Highest priority first: institutional > trust/estate wrappers > corporate > investor words.
PATTERN_TIERS: tuple[tuple[str, tuple[EntityPattern, ...]], ...] = (
    ("institutional", BANK_PATTERNS + GOVERNMENT_PATTERNS + TAX_LIEN_PATTERNS + ESTATE_PATTERNS),
    ("trust", TRUST_PATTERNS),
    ("corporate", CORPORATE_PATTERNS),
    ("investor", INVESTOR_INDICATOR_PATTERNS),
)

_INVESTOR_WORDS = re.compile(r"PROPERT|INVEST|RENTAL|HOLDING", re.IGNORECASE)
_HEIR_MARKERS = re.compile(r"\bET\s+AL\b|\bHEIRS?\b|\b(AND|&)\s+OTHERS?\b", re.IGNORECASE)


def _normalize_name(owner_name: str | None) -> str:
    return re.sub(r"\s+", " ", (owner_name or "").strip().upper())


def _all_matches(name: str) -> list[tuple[int, EntityPattern]]:
    out: list[tuple[int, EntityPattern]] = []
    for tier_idx, (_, patterns) in enumerate(PATTERN_TIERS):
        for pat in patterns:
            if pat.pattern.search(name):
                out.append((tier_idx, pat))
    return out


def _apply_entity_adjustments(
    match: EntityPattern,
    facts: PropertyFacts,
) -> tuple[OwnerPrimaryClass, OwnerSubClass, float]:
    primary, sub, confidence = match.primary_class, match.sub_class, match.confidence

    size = facts.portfolio_size
    if primary == P.investor_entity and size:
        if size >= 5 and sub != S.trust_irrevocable:
            sub = S.portfolio_investor
            confidence = min(CONFIDENCE_CEILING, confidence + 0.10)
        elif size > 1 and sub == S.llc_single:
            sub = S.llc_multi
            confidence = min(CONFIDENCE_CEILING, confidence + 0.05)

    owner_type = (facts.owner_type or "").strip().lower()
    if owner_type == "bank" and primary != P.institutional_distressed:
        primary, sub, confidence = P.institutional_distressed, S.bank_reo, 0.90
    elif owner_type == "government" and primary != P.institutional_distressed:
        primary, sub, confidence = P.institutional_distressed, S.government_local, 0.85

    return primary, sub, confidence


def _classify_individual(name: str, raw_name: str | None, facts: PropertyFacts) -> OwnerClassification:
    owner_type = (facts.owner_type or "").strip().lower()

    # Provider explicitly says bank/government but the name gave us nothing
    if owner_type == "bank":
        return OwnerClassification(P.institutional_distressed, S.bank_reo, 0.80, ("Owner Type: bank",), raw_name)
    if owner_type == "government":
        return OwnerClassification(P.institutional_distressed, S.government_local, 0.75, ("Owner Type: government",), raw_name)
    if owner_type == "trust":
        return OwnerClassification(P.individual, S.trust_living, 0.75, ("Owner Type: trust",), raw_name)

    if name and _INVESTOR_WORDS.search(name):
        return OwnerClassification(
            P.investor_entity, S.small_investor, INVESTOR_NAME_CONFIDENCE, ("Investor Name Pattern",), raw_name
        )

    sub = S.unknown
    confidence = INDIVIDUAL_BASE_CONFIDENCE if name else BLANK_NAME_CONFIDENCE

    if facts.owner_occupied is True:
        sub, confidence = S.owner_occupied, 0.85
    elif facts.owner_occupied is False:
        sub, confidence = S.absentee, 0.85
        mailing = normalize_state(facts.mailing_state)
        prop_state = normalize_state(facts.property_state)
        if mailing and prop_state and mailing != prop_state:
            sub, confidence = S.out_of_state, 0.90

    if name and _HEIR_MARKERS.search(name):
        sub, confidence = S.inherited, 0.75

    return OwnerClassification(P.individual, sub, confidence, (), raw_name)


def classify_owner(owner_name: str | None, facts: PropertyFacts | None = None) -> OwnerClassification:
    """
    Never raises. Uninformative input lands on individual/unknown at the
    lowest confidence tier.
    """
    facts = facts or PropertyFacts()
    name = _normalize_name(owner_name)
    if name in _UNINFORMATIVE_NAMES:
        name = ""

    matches = _all_matches(name) if name else []
    if not matches:
        return _classify_individual(name, owner_name, facts)

    best_tier = min(tier for tier, _ in matches)
    best = max((pat for tier, pat in matches if tier == best_tier), key=lambda p: p.confidence)
    primary, sub, confidence = _apply_entity_adjustments(best, facts)

    return OwnerClassification(
        primary_class=primary,
        sub_class=sub,
        confidence=round(confidence, 2),
        matched_patterns=tuple(pat.name for _, pat in matches),
        raw_owner_name=owner_name,
    )


def with_portfolio_size(classification: OwnerClassification, portfolio_size: int | None) -> OwnerClassification:
    """Re-apply the portfolio upgrade when the size arrives after classification."""
    if not portfolio_size or classification.primary_class != P.investor_entity:
        return classification
    if portfolio_size >= 5 and classification.sub_class in (S.llc_single, S.llc_multi, S.small_investor):
        return replace(classification, sub_class=S.portfolio_investor)
    if portfolio_size > 1 and classification.sub_class == S.llc_single:
        return replace(classification, sub_class=S.llc_multi)
    return classification


def is_likely_entity(owner_name: str | None) -> bool:
    name = _normalize_name(owner_name)
    return bool(name) and bool(_all_matches(name))


def matching_patterns(owner_name: str | None) -> list[str]:
    """Debug view: every pattern that matched, with its tier and target class."""
    name = _normalize_name(owner_name)
    if not name:
        return []
    out = []
    for tier_idx, pat in _all_matches(name):
        tier_name = PATTERN_TIERS[tier_idx][0]
        out.append(f"{pat.name} ({pat.primary_class.value}/{pat.sub_class.value}) [{pat.confidence}] tier={tier_name}")
    return out
