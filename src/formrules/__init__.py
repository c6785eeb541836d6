"""
Form Rule Engine Package

The rule engine behind multi-page data-collection forms.

ARCHITECTURAL GUARANTEE:
------------------------
This package contains ZERO knowledge of:
    - Storage formats or databases
    - Transport protocols
    - Rendering / UI widgets
    - Authentication

It operates purely on in-memory form definitions and response maps
supplied by the caller.

Layers:
    - model / rules:   form definition structure
    - validation:      per-field constraint checks
    - logic:           conditional visibility / requirement / enablement
    - pages:           page segmentation
    - session:         respondent state machine with autosave
    - templates:       pre-built definitions to start a form from
"""

__version__ = "0.1.0"
