"""
Regulatory Section Mapping
Citations used by compliance issues and letter rules.

Every issue the engine emits cites one of these sections. Use
resolve_section() so citations are formatted identically everywhere.
"""
import re

# Section key -> citation and title
REGULATORY_SECTION_MAP = {
    # FDCPA communication restrictions
    "1692c(a)(1)": {
        "citation": "15 U.S.C. § 1692c(a)(1)",
        "title": "Communication at unusual or inconvenient times",
        "description": "Contact before 8:00 a.m. or after 9:00 p.m. local time is presumed inconvenient",
    },
    "1692c(c)": {
        "citation": "15 U.S.C. § 1692c(c)",
        "title": "Ceasing communication",
        "description": "After written refusal, contact is limited to acknowledgment, specific remedies, and notice of suit",
    },

    # FDCPA disclosures
    "1692e(11)": {
        "citation": "15 U.S.C. § 1692e(11)",
        "title": "Mini-Miranda disclosure",
        "description": "Communication must disclose that it is from a debt collector",
    },
    "1692g(a)(1)": {
        "citation": "15 U.S.C. § 1692g(a)(1)",
        "title": "Amount of the debt",
    },
    "1692g(a)(2)": {
        "citation": "15 U.S.C. § 1692g(a)(2)",
        "title": "Name of the creditor",
    },
    "1692g(a)(3-5)": {
        "citation": "15 U.S.C. § 1692g(a)(3-5)",
        "title": "Dispute and verification rights",
    },
    "1692g(a)(5)": {
        "citation": "15 U.S.C. § 1692g(a)(5)",
        "title": "Name and address of the original creditor",
    },

    # Regulation F
    "1006.14(b)(2)": {
        "citation": "12 CFR § 1006.14(b)(2)",
        "title": "Call frequency presumption",
        "description": "Seven contact attempts within seven consecutive days",
    },
    "1006.34": {
        "citation": "12 CFR § 1006.34",
        "title": "Validation information",
    },

    # Jurisdiction-dependent
    "state": {
        "citation": "State-specific",
        "title": "State time-barred debt disclosure",
    },
}

SECTION_CEASE_DESIST = "1692c(c)"
SECTION_TIME_RESTRICTION = "1692c(a)(1)"
SECTION_FREQUENCY = "1006.14(b)(2)"


def resolve_section(section: str) -> str:
    """
    Convert a section key to its formatted citation.

    Examples:
        >>> resolve_section("1692c(c)")
        '15 U.S.C. § 1692c(c)'
        >>> resolve_section("§ 1006.34")
        '12 CFR § 1006.34'
    """
    section_clean = section.strip()
    for prefix in ["FDCPA ", "§", "Section "]:
        if section_clean.upper().startswith(prefix.upper()):
            section_clean = section_clean[len(prefix):].strip()
            break

    if section_clean in REGULATORY_SECTION_MAP:
        return REGULATORY_SECTION_MAP[section_clean]["citation"]

    # Regulation F sections live under 12 CFR part 1006
    if section_clean.startswith("1006."):
        return f"12 CFR § {section_clean}"

    if re.match(r"1692[a-p]?", section_clean):
        return f"15 U.S.C. § {section_clean}"

    return section_clean


def get_section_details(section: str) -> dict:
    """Full details for a section, or a minimal entry for an unmapped one."""
    section_clean = section.strip().lstrip("§").strip()
    if section_clean in REGULATORY_SECTION_MAP:
        return REGULATORY_SECTION_MAP[section_clean]
    return {"citation": resolve_section(section), "title": f"Section {section_clean}"}
