#!/usr/bin/env python3
"""
Complete Pipeline Demo: Definition → Analysis → Diagrams → Submission

Shows the full workflow:
1. Load a form definition (YAML file, or the bundled example)
2. Analyze the form for authoring mistakes
3. Generate Graphviz diagrams
4. Walk a respondent through the form, with autosave and submit

Usage:
    python demo_complete_pipeline.py [form.yaml]

Settings are read from $FORMRULES_SETTINGS when set.
"""

import sys

from formrules.analyzer import analyze_form
from formrules.backends import DotMode, generate_dot, save_dot_file
from formrules.config import configure_logging, load_settings
from formrules.examples import build_example_registration_form
from formrules.serialization import form_from_yaml, form_to_yaml, submission_to_json
from formrules.session import FormSession


def load_form(argv):
    if len(argv) > 1:
        with open(argv[1], "r", encoding="utf-8") as f:
            return form_from_yaml(f.read())
    # Round-trip the example through YAML so the loader is exercised too
    return form_from_yaml(form_to_yaml(build_example_registration_form()))


def main(argv=None):
    argv = argv if argv is not None else sys.argv
    settings = load_settings()
    configure_logging(settings)

    print("=" * 80)
    print("COMPLETE PIPELINE DEMO: Definition → Analysis → Diagrams → Submission")
    print("=" * 80)

    # =========================================================================
    # STEP 1: Load definition
    # =========================================================================
    print("\n1. LOADING FORM...")
    form = load_form(argv)
    print(f"   ✓ Loaded form: {form.title} ({form.id})")
    print(f"   ✓ Components: {len(form.components)}")
    print(f"   ✓ Data fields: {len(form.data_components())}")

    # =========================================================================
    # STEP 2: Analyze form
    # =========================================================================
    print("\n2. ANALYZING FORM...")
    report = analyze_form(form)
    print(f"   ✓ Pages: {report.total_pages}")
    print(f"   ✓ Components with logic: {report.components_with_logic}")
    print(f"   ✓ Statically required: {report.statically_required}")
    print(f"   ✓ Cycles detected: {report.has_cycles}")

    if report.warnings:
        print(f"\n   Warnings ({len(report.warnings)}):")
        for warning in report.warnings[:5]:  # Show first 5
            print(f"      - {warning}")
        if len(report.warnings) > 5:
            print(f"      ... and {len(report.warnings) - 5} more")

    if report.dependents:
        print("\n   Rule dependencies:")
        for source, targets in sorted(report.dependents.items()):
            print(f"      {source} → {', '.join(targets)}")

    # =========================================================================
    # STEP 3: Generate diagrams
    # =========================================================================
    print("\n3. GENERATING DIAGRAMS...")
    for mode in [DotMode.SIMPLE, DotMode.DETAILED, DotMode.MANAGEMENT]:
        filename = f"form_{mode.value}.dot"
        save_dot_file(form, filename, mode=mode)
        print(f"   ✓ Saved {filename}")

    lines = generate_dot(form, mode=DotMode.DETAILED).split("\n")
    for line in lines[:10]:
        print(f"   {line}")
    if len(lines) > 10:
        print(f"   ... ({len(lines) - 10} more lines)")

    if len(argv) > 1:
        print("\n" + "=" * 80)
        return

    # =========================================================================
    # STEP 4: Respondent session
    # =========================================================================
    print("\n4. FILLING IN THE EXAMPLE FORM...")
    session = FormSession(form, settings=settings)

    answers_by_page = [
        {"full_name": "Ada Lovelace", "email": "ada@example", "age": 70},
        {"attendance": "in-person", "dietary": ["vegetarian"], "arrival_date": "2026-11-19",
         "senior_discount": "yes"},
        {"satisfaction": 4, "comments": "Smooth"},
    ]

    for answers in answers_by_page:
        print(f"\n   Page {session.page_index + 1}/{session.page_count}"
              f" ({session.progress:.0f}%): {session.current_page.title or 'Start'}")
        for component_id, value in answers.items():
            session.set_answer(component_id, value)
        print(f"   Visible: {[c.id for c in session.visible_components()]}")

        result = session.next()
        if not result.ok:
            for component_id, error in result.errors.items():
                print(f"   ✗ {component_id}: {error.message}")
            # Fix the one mistake the script makes on purpose
            session.set_answer("email", "ada@example.com")
            result = session.next()
        if not result.ok:
            print(f"   ✗ Still blocked: {sorted(result.errors)}")
            return
        print("   ✓ Page accepted")

        partial = session.autosave() if session.submission is None else None
        if partial is not None:
            print(f"   ✓ Autosaved {len(partial.response_data)} answers")

    print("\n5. SUBMISSION:")
    print("-" * 80)
    print(f"   State: {session.state.value}")
    print(f"   {submission_to_json(session.submission)}")
    print("\n" + "=" * 80)


if __name__ == "__main__":
    main()
