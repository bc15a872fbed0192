from app.agent.prompts.context import COMPACT_SAUDI_CONTEXT

SCENARIO_PLANNING_CONTEXT = """Scenario Planning for Saudi Municipal Strategy:

KEY DRIVERS TO CONSIDER:
- Government funding and budget allocation (oil prices, fiscal policy)
- Technology adoption pace (AI, IoT, digital government)
- Regulatory changes (PDPL, municipal reforms, building codes)
- Population growth and urbanization (giga-projects, housing demand)
- Private sector participation (PPP, investment climate)
- Talent availability (Saudization, tech skills, international hiring)
- Citizen expectations (digital services, quality of life)

SCENARIO STRUCTURE:
- Best Case: Favorable drivers align; ambitious targets exceeded
- Most Likely: Realistic mix of progress and setbacks
- Worst Case: Key drivers turn unfavorable; plan must adapt"""

SCENARIO_SYSTEM_PROMPT = f"""You are the **Scenario Agent**, a strategic foresight expert who builds planning scenarios for Saudi Arabia's Ministry of Municipalities and Housing (MoMAH).

{COMPACT_SAUDI_CONTEXT}

{SCENARIO_PLANNING_CONTEXT}

{{taxonomy}}

CRITICAL REQUIREMENTS:
1. Generate bilingual content (English and Arabic) for descriptions, assumptions, and outcome metrics
2. Use formal Arabic (فصحى) appropriate for government documents
3. Probabilities of the three scenarios must sum to approximately 100
4. Outcomes must carry measurable values (percentages, counts, SAR amounts)
5. Ground every scenario in the plan context, SWOT, and PESTEL provided"""

SCENARIO_USER_PROMPT = """Generate three strategic planning scenarios for this plan:

{plan_context}
{swot_context}
{pestel_context}

---

## REQUIREMENTS:

Return a JSON object with keys "best_case", "most_likely", and "worst_case". Each scenario has:
- description_en / description_ar: 3-4 sentence narrative
- assumptions: 4-5 items, each with text_en and text_ar
- outcomes: 4-5 items, each with metric_en, metric_ar, and value (e.g. "85%", "12,000 units")
- probability: number (percentage)

### PROBABILITY GUIDANCE:
- best_case: 15-25
- most_likely: 50-65
- worst_case: 15-25

### OUTCOME METRICS TO CONSIDER:
- Digital service adoption rate
- Citizen satisfaction score
- Pilot success rate and scaled solutions
- Budget execution rate
- Innovation partnerships established
- Housing units delivered / permits processed"""


def swot_context_block(swot: dict | None) -> str:
    """Summarise an existing SWOT (first four items per quadrant) for the scenario prompt."""
    if not swot:
        return ""
    lines = ["", "=== EXISTING SWOT ==="]
    for key in ("strengths", "weaknesses", "opportunities", "threats"):
        items = [
            item.get("text_en") if isinstance(item, dict) else str(item)
            for item in (swot.get(key) or [])[:4]
        ]
        items = [i for i in items if i]
        if items:
            lines.append(f"{key.capitalize()}: {'; '.join(items)}")
    return "\n".join(lines) if len(lines) > 2 else ""


def pestel_context_block(pestel: dict | None) -> str:
    if not pestel:
        return ""
    lines = ["", "=== KEY PESTEL FACTORS ==="]
    for key in ("political", "economic", "technological"):
        factors = [
            item.get("factor_en") if isinstance(item, dict) else str(item)
            for item in (pestel.get(key) or [])[:2]
        ]
        factors = [f for f in factors if f]
        if factors:
            lines.append(f"{key.capitalize()}: {'; '.join(factors)}")
    return "\n".join(lines) if len(lines) > 2 else ""
