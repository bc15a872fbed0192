import unittest

from app.agent.artifacts import PlanContext, Taxonomy
from app.agent.prompts.context import plan_context_block, taxonomy_block
from app.agent.prompts.plan_analysis import build_plan_summary
from app.agent.prompts.scenarios import pestel_context_block, swot_context_block


class PlanContextBlockTests(unittest.TestCase):
    def test_defaults_for_an_empty_wizard(self):
        block = plan_context_block(PlanContext(), 2025)

        self.assertIn("Plan Name: Strategic Plan", block)
        self.assertIn("Duration: 2025 - 2030", block)
        self.assertIn("Key Stakeholders: Not yet defined", block)

    def test_arabic_names_are_appended(self):
        block = plan_context_block(
            PlanContext(
                plan_name="Riyadh Smart Services",
                plan_name_ar="خدمات الرياض الذكية",
                stakeholders=[{"name_en": "Residents"}, "Chamber of Commerce"],
            ),
            2025,
        )

        self.assertIn("Plan Name: Riyadh Smart Services (خدمات الرياض الذكية)", block)
        self.assertIn("Key Stakeholders: Residents, Chamber of Commerce", block)


class TaxonomyBlockTests(unittest.TestCase):
    def test_missing_taxonomy_renders_nothing(self):
        self.assertEqual(taxonomy_block(None), "")

    def test_codes_are_preferred_and_gaps_use_defaults(self):
        block = taxonomy_block(
            Taxonomy(sectors=[{"code": "HOUSING", "name_en": "Housing"}, {"name_en": "Parks"}])
        )

        self.assertIn("Sectors: HOUSING, Parks", block)
        self.assertIn("Technologies: AI_ML, IOT, DIGITAL_TWINS, BLOCKCHAIN", block)


class ScenarioContextTests(unittest.TestCase):
    def test_swot_block_keeps_four_items_per_quadrant(self):
        swot = {"strengths": [{"text_en": f"S{i}"} for i in range(6)], "threats": ["Budget cuts"]}
        block = swot_context_block(swot)

        self.assertIn("=== EXISTING SWOT ===", block)
        self.assertIn("Strengths: S0; S1; S2; S3", block)
        self.assertNotIn("S4", block)
        self.assertIn("Threats: Budget cuts", block)

    def test_empty_swot_renders_nothing(self):
        self.assertEqual(swot_context_block({}), "")
        self.assertEqual(swot_context_block({"strengths": []}), "")

    def test_pestel_block_uses_key_factors_only(self):
        pestel = {"political": [{"factor_en": "New regulation"}], "social": [{"factor_en": "ignored"}]}
        self.assertTrue(pestel_context_block(pestel).endswith("Political: New regulation"))


class PlanSummaryTests(unittest.TestCase):
    def test_outline(self):
        summary = build_plan_summary(
            {
                "name_en": "Madinah Innovation Plan",
                "start_year": 2025,
                "stakeholders": [{"name_en": "Residents", "type": "community"}],
                "pestel": {"political": [{}], "economic": [{}, {}]},
                "objectives": [{"name_en": "Digitise permits", "priority": "high", "sector_code": "DIGITAL"}],
            }
        )

        self.assertIn("- Name: Madinah Innovation Plan", summary)
        self.assertIn("- Duration: 2025 - ?", summary)
        self.assertIn("## Stakeholders (1 identified)", summary)
        self.assertIn("Total factors identified: 3", summary)
        self.assertIn("1. Digitise permits - Priority: high, Sector: DIGITAL", summary)
        self.assertIn("## Risks (0 identified)\nNone defined", summary)

    def test_arabic_names_are_preferred(self):
        summary = build_plan_summary({"name_en": "Plan", "name_ar": "الخطة"}, "ar")
        self.assertIn("- Name: الخطة", summary)
