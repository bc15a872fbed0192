COMPACT_SAUDI_CONTEXT = """MoMAH - Saudi Ministry of Municipalities & Housing. Vision 2030 aligned.
13 regions, 285+ municipalities, 17 Amanats. Programs: Sakani, Wafi, Ejar, REDF.
Innovation: KACST, SDAIA, MCIT, Monsha'at, Badir. Platforms: Balady, Sakani, Mostadam.
Technologies: AI/ML, IoT, Digital Twins, Smart Cities, GovTech, PropTech, BIM."""

DEFAULT_TAXONOMY = {
    "sectors": "URBAN_PLANNING, HOUSING, INFRASTRUCTURE, DIGITAL_SERVICES",
    "strategic_themes": "DIGITAL_TRANSFORMATION, SUSTAINABILITY, CITIZEN_EXPERIENCE",
    "technologies": "AI_ML, IOT, DIGITAL_TWINS, BLOCKCHAIN",
    "vision_programs": "QUALITY_OF_LIFE, HOUSING, NTP",
    "risk_categories": "STRATEGIC, OPERATIONAL, FINANCIAL, TECHNOLOGY",
}

TAXONOMY_LABELS = {
    "sectors": "Sectors",
    "strategic_themes": "Strategic Themes",
    "technologies": "Technologies",
    "vision_programs": "Vision Programs",
    "risk_categories": "Risk Categories",
}


def _names(items: list, keys: tuple[str, ...] = ("code", "name_en")) -> list[str]:
    names = []
    for item in items or []:
        if isinstance(item, dict):
            name = next((item[k] for k in keys if item.get(k)), None)
        else:
            name = item
        if name:
            names.append(str(name))
    return names


def taxonomy_block(taxonomy) -> str:
    """Render the platform taxonomy so the model reuses its exact codes."""
    if taxonomy is None:
        return ""
    lines = ["=== TAXONOMY DATA (USE THESE EXACT VALUES) ==="]
    for key, label in TAXONOMY_LABELS.items():
        values = ", ".join(_names(getattr(taxonomy, key))) or DEFAULT_TAXONOMY[key]
        lines.append(f"{label}: {values}")
    return "\n".join(lines)


def plan_context_block(context, current_year: int) -> str:
    def with_ar(value: str | None, value_ar: str | None, default: str) -> str:
        text = value or default
        return f"{text} ({value_ar})" if value_ar else text

    stakeholders = ", ".join(_names(context.stakeholders[:5], ("name_en",))) or "Not yet defined"
    return f"""=== PLAN CONTEXT ===
Plan Name: {with_ar(context.plan_name, context.plan_name_ar, "Strategic Plan")}
Vision: {with_ar(context.vision, context.vision_ar, "Not yet defined")}
Mission: {with_ar(context.mission, context.mission_ar, "Not yet defined")}
Description: {context.description or "Not yet defined"}

=== STRATEGIC FOCUS ===
Target Sectors: {", ".join(context.sectors) or "General municipal services"}
Strategic Themes: {", ".join(context.themes) or "General improvement"}
Focus Technologies: {", ".join(context.technologies) or "AI/ML, IoT, Smart Cities"}
Vision 2030 Programs: {", ".join(context.vision_2030_programs) or "Quality of Life, Housing"}
Target Regions: {", ".join(context.regions) or "Kingdom-wide"}

=== TIMELINE & RESOURCES ===
Duration: {context.start_year or current_year} - {context.end_year or current_year + 5}
Budget Range: {context.budget_range or "To be determined"}

=== DISCOVERY INPUTS ===
Key Challenges: {context.key_challenges or "General municipal challenges"}
Available Resources: {context.available_resources or "Standard municipal resources"}
Initial Constraints: {context.initial_constraints or "Standard constraints"}

=== EXISTING ANALYSIS ===
Key Stakeholders: {stakeholders}"""
