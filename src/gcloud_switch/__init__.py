"""gcloud-switch -- switch between named Google Cloud credential profiles.

A *profile* pairs a user account/project (the gcloud CLI configuration) with
an application-default credential (ADC) account and quota project. Profiles
are kept in a single JSON document in the user's config directory and are
switched from an interactive terminal UI or from plain sub-commands.

Typical workflow::

    gcloud-switch import           # adopt existing gcloud configurations
    gcloud-switch                  # pick and activate a profile interactively
    gcloud-switch switch work      # activate a profile non-interactively

Modules:
    app: Typer application and console-script entry point.
    models: Pydantic models for profiles and sync settings.
    config: XDG-aware paths and atomic file writes.
    store: The profile store.
    backend: Credential backend (gcloud) capability surface.
    verification: Background credential verification.
    tui: Interactive terminal UI.
    sync: Git-backed profile synchronisation and merge.
"""

__version__ = "0.4.0"
