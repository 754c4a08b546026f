"""OpenAI client for the optional spending coach."""

import logging

from openai import OpenAI, OpenAIError

from ..exceptions import CoachUnavailableError
from ..models import BudgetMap, PartnerProfile, Transaction

logger = logging.getLogger(__name__)


class SpendingCoach:
    """Asks a text-generation model for tips on a couple's spending."""

    SYSTEM_PROMPT = (
        "You are a concise financial advisor for couples who share expenses. "
        "Give 3 actionable tips based on the spending and monthly limits provided."
    )

    def __init__(self, api_key: str, model: str = "gpt-4o-mini"):
        """Initialize the coach."""
        self.client = OpenAI(api_key=api_key)
        self.model = model

    def advise(
        self,
        transactions: list[Transaction],
        budgets: BudgetMap,
        partners: PartnerProfile,
    ) -> str:
        """
        Get spending advice for the given transactions and limits.

        Args:
            transactions: Transactions to summarize
            budgets: Monthly limit per category
            partners: Display names used in the summary

        Returns:
            Advice text

        Raises:
            CoachUnavailableError: If the API call fails
        """
        spending = "\n".join(
            f"{t.date.date().isoformat()}: {t.description} - ${t.total_amount} "
            f"in {t.splits[0].category} (paid by {partners.name_for(t.payer)})"
            for t in transactions
        )
        limits = "\n".join(f"{category}: ${limit}" for category, limit in budgets.items())

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": self.SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": f"SPENDING:\n{spending}\n\nLIMITS:\n{limits}",
                    },
                ],
            )
        except OpenAIError as e:
            logger.error(f"Coach request failed: {e}")
            raise CoachUnavailableError(f"Coach request failed: {e}") from e

        advice = response.choices[0].message.content or "No insights found."
        logger.info(f"Coach returned {len(advice)} characters of advice")
        return advice
