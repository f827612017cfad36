"""
Tests for leadscout.orchestrator.

Stage doubles block on ``asyncio.Event``s so each test decides the order in
which overlapping requests resolve.
"""
import asyncio

import pytest

from leadscout.auditor import Auditor
from leadscout.config import Config, GeminiConfig
from leadscout.drafter import PitchDrafter
from leadscout.errors import AUDIT_FAILED, AuditError, DiscoveryError, LEAD_FETCH_FAILED, PitchError
from leadscout.finder import LeadFinder
from leadscout.models import BusinessAudit, PitchFocus, PitchLength, PitchTone
from leadscout.orchestrator import PipelineOrchestrator, StageStatus, build_pipeline


class Gate:
    """Blocks a coroutine until released with a value or an exception."""

    def __init__(self):
        self._event = asyncio.Event()
        self._value = None
        self._exc = None

    def release(self, value=None, exc=None):
        self._value, self._exc = value, exc
        self._event.set()

    async def wait(self):
        await self._event.wait()
        if self._exc is not None:
            raise self._exc
        return self._value


class GatedFinder:
    def __init__(self):
        self.gates = []

    async def discover(self, category, location):
        gate = Gate()
        self.gates.append(gate)
        return await gate.wait()


class GatedAuditor:
    def __init__(self):
        self.gates = {}

    async def audit(self, lead):
        gate = Gate()
        self.gates.setdefault(lead.id, []).append(gate)
        return await gate.wait()


class GatedDrafter:
    def __init__(self):
        self.gates = []
        self.requests = []

    async def generate_pitch(self, lead, audit, focus, tone, length):
        gate = Gate()
        self.gates.append(gate)
        self.requests.append((lead.id, focus, tone, length))
        return await gate.wait()


def _orchestrator():
    finder, auditor, drafter = GatedFinder(), GatedAuditor(), GatedDrafter()
    return PipelineOrchestrator(finder, auditor, drafter), finder, auditor, drafter


async def _settle():
    for _ in range(5):
        await asyncio.sleep(0)


def _audit_for(name):
    return BusinessAudit(content=f"audit of {name}", gaps=[f"{name} gap"])


async def _select_and_resolve(orch, auditor, lead, audit):
    task = asyncio.create_task(orch.select_lead(lead))
    await _settle()
    auditor.gates[lead.id][-1].release(audit)
    return await task


class TestStaleAudit:
    """Late audit results for a superseded selection are discarded."""

    def test_late_result_for_earlier_lead_is_discarded(self, lead, other_lead):
        async def scenario():
            orch, _, auditor, _ = _orchestrator()
            audit_a, audit_b = _audit_for("A"), _audit_for("B")

            task_a = asyncio.create_task(orch.select_lead(lead))
            await _settle()
            task_b = asyncio.create_task(orch.select_lead(other_lead))
            await _settle()

            assert orch.audit_state.loading
            auditor.gates[other_lead.id][0].release(audit_b)
            assert await task_b is audit_b
            auditor.gates[lead.id][0].release(audit_a)
            assert await task_a is None

            assert orch.selected_lead == other_lead
            assert orch.audit is audit_b
            assert orch.audit_state.status is StageStatus.SUCCESS

        asyncio.run(scenario())

    def test_stale_result_arriving_first_is_also_discarded(self, lead, other_lead):
        async def scenario():
            orch, _, auditor, _ = _orchestrator()
            task_a = asyncio.create_task(orch.select_lead(lead))
            await _settle()
            task_b = asyncio.create_task(orch.select_lead(other_lead))
            await _settle()

            auditor.gates[lead.id][0].release(_audit_for("A"))
            assert await task_a is None
            assert orch.audit is None
            assert orch.audit_state.loading

            audit_b = _audit_for("B")
            auditor.gates[other_lead.id][0].release(audit_b)
            assert await task_b is audit_b
            assert orch.audit is audit_b

        asyncio.run(scenario())

    def test_refresh_supersedes_earlier_audit_of_same_lead(self, lead):
        async def scenario():
            orch, _, auditor, _ = _orchestrator()
            first = asyncio.create_task(orch.select_lead(lead))
            await _settle()
            second = asyncio.create_task(orch.refresh_audit())
            await _settle()

            fresh = _audit_for("fresh")
            auditor.gates[lead.id][1].release(fresh)
            await second
            auditor.gates[lead.id][0].release(_audit_for("old"))
            await first
            assert orch.audit is fresh

        asyncio.run(scenario())

    def test_stale_failure_does_not_surface(self, lead, other_lead):
        async def scenario():
            orch, _, auditor, _ = _orchestrator()
            task_a = asyncio.create_task(orch.select_lead(lead))
            await _settle()
            task_b = asyncio.create_task(orch.select_lead(other_lead))
            await _settle()

            auditor.gates[lead.id][0].release(exc=AuditError())
            await task_a
            assert orch.error is None
            assert orch.audit_state.status is StageStatus.IN_FLIGHT

            auditor.gates[other_lead.id][0].release(_audit_for("B"))
            await task_b
            assert orch.audit_state.status is StageStatus.SUCCESS

        asyncio.run(scenario())


class TestForwardInvalidation:
    """A new search clears and orphans everything downstream."""

    def test_search_clears_selection_audit_and_pitch(self, lead, audit):
        async def scenario():
            orch, finder, auditor, drafter = _orchestrator()
            await _select_and_resolve(orch, auditor, lead, audit)
            pitch_task = asyncio.create_task(orch.create_pitch())
            await _settle()
            drafter.gates[0].release("pitch text")
            await pitch_task
            assert orch.pitch == "pitch text"

            search = asyncio.create_task(orch.search("Dentist", "Austin, TX"))
            await _settle()
            assert orch.selected_lead is None
            assert orch.audit is None
            assert orch.pitch is None
            assert orch.last_pitch_request is None
            assert orch.discovery_state.loading
            assert orch.last_search.category == "Dentist"

            finder.gates[0].release([lead])
            assert await search == [lead]
            assert orch.leads == [lead]
            assert orch.discovery_state.status is StageStatus.SUCCESS

        asyncio.run(scenario())

    def test_in_flight_audit_is_orphaned_by_search(self, lead):
        async def scenario():
            orch, finder, auditor, _ = _orchestrator()
            audit_task = asyncio.create_task(orch.select_lead(lead))
            await _settle()
            search = asyncio.create_task(orch.search("Dentist", "Austin, TX"))
            await _settle()

            auditor.gates[lead.id][0].release(_audit_for("A"))
            assert await audit_task is None
            assert orch.audit is None
            assert orch.audit_state.status is StageStatus.IDLE

            finder.gates[0].release([])
            assert await search == []

        asyncio.run(scenario())

    def test_older_search_results_are_discarded(self, lead, other_lead):
        async def scenario():
            orch, finder, _, _ = _orchestrator()
            first = asyncio.create_task(orch.search("Dentist", "Austin, TX"))
            await _settle()
            second = asyncio.create_task(orch.search("Plumber", "Denver, CO"))
            await _settle()

            finder.gates[1].release([other_lead])
            await second
            finder.gates[0].release([lead])
            assert await first is None
            assert orch.leads == [other_lead]

        asyncio.run(scenario())

    def test_previous_batch_is_cleared_while_search_runs(self, lead, other_lead):
        async def scenario():
            orch, finder, auditor, _ = _orchestrator()
            first = asyncio.create_task(orch.search("Dentist", "Austin, TX"))
            await _settle()
            finder.gates[0].release([lead])
            await first

            second = asyncio.create_task(orch.search("Dentist", "Austin, TX"))
            await _settle()
            assert orch.leads == []

            # A lead from the old batch selected and audited mid-search.
            await _select_and_resolve(orch, auditor, lead, _audit_for("A"))
            assert orch.selected_lead == lead

            finder.gates[1].release([other_lead])
            assert await second == [other_lead]
            assert orch.leads == [other_lead]
            assert orch.selected_lead is None
            assert orch.audit is None
            assert orch.pitch is None
            assert orch.audit_state.status is StageStatus.IDLE

        asyncio.run(scenario())

    def test_selection_listed_in_new_batch_is_kept(self, lead, audit):
        async def scenario():
            orch, finder, auditor, _ = _orchestrator()
            search = asyncio.create_task(orch.search("Dentist", "Austin, TX"))
            await _settle()
            await _select_and_resolve(orch, auditor, lead, audit)

            finder.gates[0].release([lead])
            await search
            assert orch.selected_lead == lead
            assert orch.audit is audit

        asyncio.run(scenario())

    def test_failed_search_drops_mid_search_selection(self, lead, audit):
        async def scenario():
            orch, finder, auditor, _ = _orchestrator()
            search = asyncio.create_task(orch.search("Dentist", "Austin, TX"))
            await _settle()
            await _select_and_resolve(orch, auditor, lead, audit)

            finder.gates[0].release(exc=DiscoveryError())
            assert await search is None
            assert orch.leads == []
            assert orch.selected_lead is None
            assert orch.error == LEAD_FETCH_FAILED

        asyncio.run(scenario())

    def test_blank_search_is_a_no_op(self, lead, audit):
        async def scenario():
            orch, finder, auditor, _ = _orchestrator()
            await _select_and_resolve(orch, auditor, lead, audit)
            assert await orch.search("", "Austin, TX") is None
            assert finder.gates == []
            assert orch.selected_lead == lead

        asyncio.run(scenario())


class TestPitch:
    """Pitch requests are tied to the selection that issued them."""

    def test_requires_selected_lead_and_audit(self, lead):
        async def scenario():
            orch, _, _, drafter = _orchestrator()
            assert await orch.create_pitch() is None
            orch.selected_lead = lead
            assert await orch.create_pitch() is None
            assert drafter.gates == []

        asyncio.run(scenario())

    def test_pitch_discarded_when_selection_changes(self, lead, other_lead, audit):
        async def scenario():
            orch, _, auditor, drafter = _orchestrator()
            await _select_and_resolve(orch, auditor, lead, audit)
            pitch_task = asyncio.create_task(orch.create_pitch(PitchFocus.WEBSITE_PRESENCE))
            await _settle()

            reselect = asyncio.create_task(orch.select_lead(other_lead))
            await _settle()
            drafter.gates[0].release("pitch for A")
            assert await pitch_task is None
            assert orch.pitch is None

            auditor.gates[other_lead.id][0].release(_audit_for("B"))
            await reselect
            assert orch.pitch is None

        asyncio.run(scenario())

    def test_newer_pitch_request_wins(self, lead, audit):
        async def scenario():
            orch, _, auditor, drafter = _orchestrator()
            await _select_and_resolve(orch, auditor, lead, audit)
            first = asyncio.create_task(orch.create_pitch(tone="Formal"))
            await _settle()
            second = asyncio.create_task(orch.create_pitch(tone="Urgent"))
            await _settle()

            drafter.gates[1].release("urgent pitch")
            await second
            drafter.gates[0].release("formal pitch")
            assert await first is None
            assert orch.pitch == "urgent pitch"
            assert orch.last_pitch_request.tone is PitchTone.URGENT

        asyncio.run(scenario())

    def test_regenerate_reuses_last_parameters(self, lead, audit):
        async def scenario():
            orch, _, auditor, drafter = _orchestrator()
            await _select_and_resolve(orch, auditor, lead, audit)
            assert await orch.regenerate_pitch() is None

            task = asyncio.create_task(orch.create_pitch("website-presence", "Friendly", "Long"))
            await _settle()
            drafter.gates[0].release("v1")
            await task

            task = asyncio.create_task(orch.regenerate_pitch())
            await _settle()
            drafter.gates[1].release("v2")
            assert await task == "v2"
            assert drafter.requests[1] == (
                lead.id,
                PitchFocus.WEBSITE_PRESENCE,
                PitchTone.FRIENDLY,
                PitchLength.LONG,
            )

        asyncio.run(scenario())


class TestErrors:
    """Stage failures are isolated and carry user-facing messages."""

    def test_discovery_failure_sets_error(self):
        async def scenario():
            orch, finder, _, _ = _orchestrator()
            task = asyncio.create_task(orch.search("Dentist", "Austin, TX"))
            await _settle()
            finder.gates[0].release(exc=DiscoveryError())
            assert await task is None
            assert orch.discovery_state.status is StageStatus.FAILED
            assert orch.discovery_state.error == LEAD_FETCH_FAILED
            assert orch.error == LEAD_FETCH_FAILED
            assert orch.loading == {"leads": False, "audit": False, "pitch": False}

        asyncio.run(scenario())

    def test_audit_failure_keeps_selection(self, lead):
        async def scenario():
            orch, _, auditor, _ = _orchestrator()
            task = asyncio.create_task(orch.select_lead(lead))
            await _settle()
            auditor.gates[lead.id][0].release(exc=AuditError())
            await task
            assert orch.selected_lead == lead
            assert orch.audit is None
            assert orch.audit_state.error == AUDIT_FAILED

            # A retry starts a fresh cycle and clears the error.
            retry = asyncio.create_task(orch.refresh_audit())
            await _settle()
            assert orch.error is None
            assert orch.audit_state.status is StageStatus.IN_FLIGHT
            auditor.gates[lead.id][1].release(_audit_for("retry"))
            await retry
            assert orch.audit_state.status is StageStatus.SUCCESS

        asyncio.run(scenario())

    def test_pitch_failure_keeps_audit(self, lead, audit):
        async def scenario():
            orch, _, auditor, drafter = _orchestrator()
            await _select_and_resolve(orch, auditor, lead, audit)
            task = asyncio.create_task(orch.create_pitch())
            await _settle()
            drafter.gates[0].release(exc=PitchError())
            assert await task is None
            assert orch.audit is audit
            assert orch.pitch_state.status is StageStatus.FAILED
            orch.dismiss_error()
            assert orch.error is None

        asyncio.run(scenario())

    def test_clear_selected_lead(self, lead, audit):
        async def scenario():
            orch, _, auditor, _ = _orchestrator()
            await _select_and_resolve(orch, auditor, lead, audit)
            orch.clear_selected_lead()
            assert orch.selected_lead is None
            assert orch.audit is None
            assert orch.audit_state.status is StageStatus.IDLE

        asyncio.run(scenario())


def test_build_pipeline_wires_stages(make_provider):
    config = Config(gemini=GeminiConfig(api_key="test-key"))
    orch = build_pipeline(config, provider=make_provider())
    assert isinstance(orch._finder, LeadFinder)
    assert isinstance(orch._auditor, Auditor)
    assert isinstance(orch._drafter, PitchDrafter)


def test_end_to_end_with_scripted_provider(make_provider):
    provider = make_provider(
        '[{"name":"Smile Co","address":"1 Main St","rating":3.2,"reviews":40}]',
        "Smile Co has no website.",
        '```json\n["No Website"]\n```',
        "Hello Smile Co, let's build your digital storefront.",
    )
    orch = build_pipeline(Config(gemini=GeminiConfig(api_key="test-key")), provider=provider)

    async def scenario():
        leads = await orch.search("Dentist", "Austin, TX")
        audit = await orch.select_lead(leads[0])
        pitch = await orch.create_pitch("website-presence", "Friendly", "Short")
        return leads, audit, pitch

    leads, audit, pitch = asyncio.run(scenario())
    assert leads[0].name == "Smile Co"
    assert audit.gaps == ["No Website"]
    assert "Smile Co" in pitch
    assert [c["model"] for c in provider.calls] == [
        "gemini-2.5-flash-lite",
        "gemini-2.5-flash",
        "gemini-2.5-flash",
        "gemini-2.5-flash",
    ]
