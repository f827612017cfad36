#!/usr/bin/env python3
"""leadscout: CLI entrypoint for the discover → audit → pitch pipeline.

Usage::

    python main.py --category "Dentist" --location "Austin, TX" --lead 0 \
        --focus website-presence --tone Friendly --length Short
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import pandas as pd
from leadscout.config import Config, load_config
from leadscout.errors import ConfigError
from leadscout.models import BusinessLead, PitchFocus, PitchLength, PitchTone
from leadscout.orchestrator import PipelineOrchestrator, build_pipeline
from leadscout.utils import setup_logging

logger = logging.getLogger("leadscout")

ENV_FILES = (Path(".env"), Path("../.env"))

EXPORT_COLUMNS = ["id", "name", "address", "rating", "reviews", "website", "opportunities"]


# ------------------------------------------------------------------
# CLI argument parser
# ------------------------------------------------------------------
def parse_args(config: Config, argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="leadscout: find local businesses, audit their online presence, draft a pitch.",
    )
    parser.add_argument("--category", default=config.default_category, help="Business niche (e.g. 'Dentist')")
    parser.add_argument("--location", default=config.default_location, help="City or area (e.g. 'Austin, TX')")
    parser.add_argument("--count", type=int, default=config.lead_count, help="Max leads to discover")
    parser.add_argument("--lead", type=int, default=None, help="Index of the lead to audit and pitch")
    parser.add_argument("--focus", default=PitchFocus.AUTOMATION.value, choices=[f.value for f in PitchFocus])
    parser.add_argument("--tone", default=PitchTone.PROFESSIONAL.value, help="Formal, Friendly, Urgent, Professional or free text")
    parser.add_argument("--length", default=PitchLength.MEDIUM.value, choices=[n.value for n in PitchLength])
    parser.add_argument("--output", default="leads_output.csv", help="Output CSV path for discovered leads")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def export_leads(leads: list[BusinessLead], output_path: str) -> None:
    rows = []
    for lead in leads:
        row = lead.model_dump(include=set(EXPORT_COLUMNS), mode="json")
        row["opportunities"] = "; ".join(row["opportunities"])
        rows.append(row)
    df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)
    df.to_csv(output_path, index=False, encoding="utf-8")
    logger.info("Exported %d leads → %s", len(df), output_path)


# ------------------------------------------------------------------
# Pipeline
# ------------------------------------------------------------------
async def run_pipeline(pipeline: PipelineOrchestrator, args: argparse.Namespace) -> int:
    """Search → (Audit → Pitch for the chosen lead) → Export."""
    logger.info("=" * 60)
    logger.info("STAGE 1 — DISCOVER (category=%s, location=%s)", args.category, args.location)
    logger.info("=" * 60)
    leads = await pipeline.search(args.category, args.location)
    if leads is None:
        logger.error(pipeline.error or "Search did not run.")
        return 1
    if not leads:
        logger.warning("No leads found. Try broadening your search criteria.")
        return 0

    export_leads(leads, args.output)
    for i, lead in enumerate(leads):
        tags = ", ".join(o.value for o in lead.opportunities) or "-"
        print(f"[{i:2d}] {lead.name} | {lead.rating} ({lead.reviews} reviews) | {tags}")

    if args.lead is None:
        return 0
    if not 0 <= args.lead < len(leads):
        logger.error("Lead index %d out of range (0-%d).", args.lead, len(leads) - 1)
        return 1

    lead = leads[args.lead]
    logger.info("=" * 60)
    logger.info("STAGE 2 — AUDIT   (%s)", lead.name)
    logger.info("=" * 60)
    audit = await pipeline.select_lead(lead)
    if audit is None:
        logger.error(pipeline.error or "Audit did not complete.")
        return 1

    print(f"\n# Audit: {lead.name}\n\n{audit.content}\n")
    print("Gaps: " + (", ".join(audit.gaps) or "none identified"))
    for source in audit.sources:
        print(f"  - {source.title}: {source.uri}")

    logger.info("=" * 60)
    logger.info("STAGE 3 — PITCH   (%s, %s, %s)", args.focus, args.tone, args.length)
    logger.info("=" * 60)
    pitch = await pipeline.create_pitch(args.focus, args.tone, args.length)
    if pitch is None:
        logger.error(pipeline.error or "Pitch did not complete.")
        return 1
    print(f"\n# Pitch\n\n{pitch}")
    return 0


# ------------------------------------------------------------------
# Entrypoint
# ------------------------------------------------------------------
def find_env_file(candidates=ENV_FILES) -> Path | None:
    """First existing .env among project root and parent."""
    for env_path in candidates:
        if env_path.exists():
            return env_path
    return None


def main(argv: list[str] | None = None) -> None:
    config = load_config(find_env_file())
    args = parse_args(config, argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)
    config.lead_count = max(1, args.count)
    config.log_status()

    try:
        config.gemini.validate()
    except ConfigError as exc:
        logger.critical("%s", exc)
        sys.exit(1)

    pipeline = build_pipeline(config)
    sys.exit(asyncio.run(run_pipeline(pipeline, args)))


if __name__ == "__main__":
    main()
