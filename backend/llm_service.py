"""LLM Service - OpenAI client access and the one-shot metrics analyzer"""
import os
import logging
from typing import Optional
from pathlib import Path
from dotenv import load_dotenv
from openai import AsyncOpenAI
from pydantic import ValidationError

from models import AIAnalysisResponse, DashboardMetrics

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

logger = logging.getLogger(__name__)

CHAT_MODEL = os.environ.get('OPENAI_MODEL', 'gpt-4o')
MINI_MODEL = os.environ.get('OPENAI_MINI_MODEL', 'gpt-4o-mini')

_openai_client: Optional[AsyncOpenAI] = None


def get_api_key() -> str:
    """Read at call time so a key added to the environment is picked up."""
    return (os.environ.get('OPENAI_API_KEY') or '').strip()


def get_client() -> AsyncOpenAI:
    """Lazy-initialize the shared AsyncOpenAI client."""
    global _openai_client
    if _openai_client is None:
        _openai_client = AsyncOpenAI(api_key=get_api_key() or None)
    return _openai_client


# ============ Metrics analyzer ============

MISSING_KEY_ANALYSIS = AIAnalysisResponse(
    insight="API key missing. Please configure your OpenAI API key to receive AI insights.",
    recommendation="Check your environment variables.",
    risk_level="low",
)

FAILED_ANALYSIS = AIAnalysisResponse(
    insight="Unable to analyze data at this moment.",
    recommendation="Please try again later.",
    risk_level="low",
)

ANALYSIS_SCHEMA = {
    "type": "object",
    "properties": {
        "insight": {
            "type": "string",
            "description": "Direct executive summary of performance (max 20 words).",
        },
        "recommendation": {
            "type": "string",
            "description": "One concrete strategic action.",
        },
        "riskLevel": {
            "type": "string",
            "enum": ["low", "medium", "high"],
            "description": "Assessment of business risk: low, medium, or high.",
        },
    },
    "required": ["insight", "recommendation", "riskLevel"],
    "additionalProperties": False,
}


def build_analysis_prompt(metrics: DashboardMetrics) -> str:
    return f"""Act as a senior data analyst. Analyze the metrics below and give a direct executive summary, one strategic recommendation and the risk level.
Answer in Brazilian Portuguese. Be short and blunt.

Metrics:
- Total Revenue: ${metrics.total_revenue}
- Revenue Growth (MoM): {metrics.revenue_growth}%
- Average Ticket: ${metrics.average_ticket}
- New Customers: {metrics.new_customers}"""


async def analyze_business_metrics(metrics: DashboardMetrics) -> AIAnalysisResponse:
    """Single schema-constrained call. Never raises: failures return a fixed fallback."""
    if not get_api_key():
        logger.warning("OpenAI API key is missing.")
        return MISSING_KEY_ANALYSIS.model_copy()

    try:
        response = await get_client().chat.completions.create(
            model=MINI_MODEL,
            messages=[{"role": "user", "content": build_analysis_prompt(metrics)}],
            response_format={
                "type": "json_schema",
                "json_schema": {
                    "name": "metrics_analysis",
                    "strict": True,
                    "schema": ANALYSIS_SCHEMA,
                },
            },
        )
        content = response.choices[0].message.content
        if not content:
            raise ValueError("No response text generated")
        return AIAnalysisResponse.model_validate_json(content)

    except (ValidationError, ValueError) as e:
        logger.error(f"Metrics analysis returned an invalid payload: {e}")
        return FAILED_ANALYSIS.model_copy()
    except Exception as e:
        logger.error(f"Metrics analysis failed: {e}")
        return FAILED_ANALYSIS.model_copy()
