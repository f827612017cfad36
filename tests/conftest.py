from pathlib import Path
import sys

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from leadscout.errors import ProviderError
from leadscout.models import BusinessAudit, BusinessLead, OpportunityType, Source
from leadscout.provider import Completion


class FakeProvider:
    """Scripted ``AIProvider``: replays queued replies and records every call.

    A queued item may be a ``Completion``, a plain string (wrapped as text) or
    an exception instance (raised).
    """

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    async def complete(self, prompt, *, model=None, tools=(), response_schema=None):
        self.calls.append(
            {"prompt": prompt, "model": model, "tools": list(tools), "response_schema": response_schema}
        )
        if not self.replies:
            raise AssertionError("FakeProvider ran out of scripted replies")
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        if isinstance(reply, str):
            return Completion(text=reply)
        return reply


@pytest.fixture
def make_provider():
    return FakeProvider


@pytest.fixture
def provider_error():
    return ProviderError("503 Service Unavailable")


@pytest.fixture
def lead():
    return BusinessLead(
        id="lead-0-1700000000000",
        name="Smile Co",
        address="1 Main St, Austin, TX",
        rating=3.2,
        reviews=40,
        website=None,
        opportunities=[OpportunityType.LOW_REPUTATION, OpportunityType.MISSING_INFO],
    )


@pytest.fixture
def other_lead():
    return BusinessLead(
        id="lead-1-1700000000000",
        name="Bright Teeth Dental",
        address="22 Oak Ave, Austin, TX",
        rating=4.8,
        reviews=12,
        website="https://brightteeth.example",
        opportunities=[OpportunityType.UNDERVALUED],
    )


@pytest.fixture
def audit():
    return BusinessAudit(
        content="Smile Co has no website and an inactive Facebook page.",
        sources=[Source(title="Facebook", uri="https://facebook.com/smileco")],
        gaps=["No Website", "No Online Booking"],
    )
