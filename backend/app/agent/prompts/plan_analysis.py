from typing import Any

PLAN_ANALYSIS_SYSTEM_PROMPTS = {
    "en": (
        "You are an expert strategic planning consultant specializing in evaluating and analyzing "
        "strategic plans. Analyze the provided plan and give a comprehensive evaluation with "
        "actionable recommendations. Respond in English."
    ),
    "ar": (
        "أنت مستشار استراتيجي خبير متخصص في تقييم وتحليل الخطط الاستراتيجية. "
        "قم بتحليل الخطة المقدمة وتقديم تقييم شامل مع توصيات قابلة للتنفيذ. "
        "يجب أن تكون استجابتك باللغة العربية."
    ),
}

PLAN_ANALYSIS_USER_PROMPTS = {
    "en": (
        "Analyze this strategic plan and provide a comprehensive evaluation:\n\n"
        "{summary}\n\n"
        "Provide your analysis in the following JSON format."
    ),
    "ar": (
        "قم بتحليل هذه الخطة الاستراتيجية وقدم تقييماً شاملاً:\n\n"
        "{summary}\n\n"
        "قدم تحليلك بالتنسيق JSON التالي مع المفاتيح الإنجليزية والقيم العربية."
    ),
}

PESTEL_KEYS = ("political", "economic", "social", "technological", "environmental", "legal")


def _count(value: Any) -> int:
    return len(value) if isinstance(value, list) else 0


def _defined(data: dict, field: str) -> str:
    return "Defined" if data.get(f"{field}_en") or data.get(f"{field}_ar") else "Missing"


def _or(value: Any, default: str = "?") -> Any:
    return default if value is None or value == "" else value


def build_plan_summary(data: dict[str, Any], language: str = "en") -> str:
    """
    Condense the wizard data of a strategic plan into the markdown outline sent to
    the model. Names prefer the requested language and fall back to the other one.
    """

    def text(item: dict, field: str) -> str:
        en, ar = item.get(f"{field}_en"), item.get(f"{field}_ar")
        return (ar or en or "") if language == "ar" else (en or ar or "")

    def listing(lines: list[str]) -> str:
        return "\n".join(lines) or "None defined"

    sections = [
        "## Plan Overview\n"
        f"- Name: {text(data, 'name') or 'Not provided'}\n"
        f"- Description: {text(data, 'description') or 'Not provided'}\n"
        f"- Duration: {data.get('start_year') or '?'} - {data.get('end_year') or '?'}\n"
        f"- Budget Range: {data.get('budget_range') or 'Not specified'}",
        "## Vision & Mission\n"
        f"- Vision: {text(data, 'vision') or 'Not provided'}\n"
        f"- Mission: {text(data, 'mission') or 'Not provided'}\n"
        f"- Core Values: {_count(data.get('core_values'))} defined",
    ]

    stakeholders = data.get("stakeholders") or []
    sections.append(
        f"## Stakeholders ({len(stakeholders)} identified)\n"
        + listing([
            f"- {text(s, 'name')}: {s.get('type') or 'unclassified'}, "
            f"Influence: {s.get('influence') or '?'}, Interest: {s.get('interest') or '?'}"
            for s in stakeholders[:5]
        ])
    )

    swot = data.get("swot") or {}
    sections.append(
        "## SWOT Analysis\n"
        f"- Strengths: {_count(swot.get('strengths'))}\n"
        f"- Weaknesses: {_count(swot.get('weaknesses'))}\n"
        f"- Opportunities: {_count(swot.get('opportunities'))}\n"
        f"- Threats: {_count(swot.get('threats'))}"
    )

    pestel = data.get("pestel") or {}
    pestel_count = sum(_count(pestel.get(key)) for key in PESTEL_KEYS)
    sections.append(f"## PESTEL Analysis\n- Total factors identified: {pestel_count}")

    risks = data.get("risks") or []
    sections.append(
        f"## Risks ({len(risks)} identified)\n"
        + listing([
            f"- {text(r, 'name')}: Probability: {r.get('probability') or '?'}, "
            f"Impact: {r.get('impact') or '?'}, "
            f"Has mitigation: {'Yes' if r.get('mitigation_en') or r.get('mitigation_ar') else 'No'}"
            for r in risks[:5]
        ])
    )

    objectives = data.get("objectives") or []
    sections.append(
        f"## Strategic Objectives ({len(objectives)} defined)\n"
        + listing([
            f"{i}. {text(o, 'name') or 'Unnamed'} - Priority: {o.get('priority') or '?'}, "
            f"Sector: {o.get('sector_code') or '?'}"
            for i, o in enumerate(objectives, start=1)
        ])
    )

    alignments = data.get("national_alignments") or []
    sections.append(
        f"## National Alignments ({len(alignments)} connections)\n"
        + listing([f"- Program: {a.get('program_code') or '?'}" for a in alignments[:5]])
    )

    kpis = data.get("kpis") or []
    sections.append(
        f"## KPIs ({len(kpis)} defined)\n"
        + listing([
            f"- {text(k, 'name') or 'Unnamed'}: Baseline: {_or(k.get('baseline_value'))}, "
            f"Target: {_or(k.get('target_value'))}, Unit: {k.get('unit') or '?'}, "
            f"Frequency: {k.get('measurement_frequency') or '?'}"
            for k in kpis
        ])
    )

    action_plans = data.get("action_plans") or []
    sections.append(
        f"## Action Plans ({len(action_plans)} initiatives)\n"
        + listing([
            f"- {text(a, 'title') or 'Unnamed'}: Budget: {a.get('budget') or '?'}, "
            f"Status: {a.get('status') or '?'}"
            for a in action_plans[:5]
        ])
    )

    resource_plan = data.get("resource_plan") or {}
    sections.append(
        "## Resources\n"
        f"- HR Requirements: {_count(resource_plan.get('hr_requirements'))} roles\n"
        f"- Budget Allocations: {_count(resource_plan.get('budget_allocation'))} categories"
    )

    sections.append(
        "## Timeline\n"
        f"- Phases: {_count(data.get('phases'))}\n"
        f"- Milestones: {_count(data.get('milestones'))}"
    )

    governance = data.get("governance") or {}
    sections.append(
        "## Governance\n"
        f"- Committees: {_count(governance.get('committees'))}\n"
        f"- Reporting Frequency: {governance.get('reporting_frequency') or 'Not specified'}"
    )

    comm_plan = data.get("communication_plan") or {}
    sections.append(
        "## Communication Plan\n"
        f"- Master Narrative: {_defined(comm_plan, 'master_narrative')}\n"
        f"- Key Messages: {_count(comm_plan.get('key_messages'))}\n"
        f"- Internal Channels: {_count(comm_plan.get('internal_channels'))}\n"
        f"- External Channels: {_count(comm_plan.get('external_channels'))}"
    )

    change_mgmt = data.get("change_management") or {}
    sections.append(
        "## Change Management\n"
        f"- Readiness Assessment: {_defined(change_mgmt, 'readiness_assessment')}\n"
        f"- Change Approach: {_defined(change_mgmt, 'change_approach')}\n"
        f"- Training Plan: {_count(change_mgmt.get('training_plan'))} items"
    )

    return "\n\n".join(sections)
