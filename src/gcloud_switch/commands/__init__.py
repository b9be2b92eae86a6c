"""Built-in CLI sub-commands for gcloud-switch.

* :mod:`~gcloud_switch.commands.profiles` -- ``add``, ``list``, ``switch``,
  ``delete`` and ``import``, registered directly on the root app.
* :mod:`~gcloud_switch.commands.sync` -- the ``sync`` group (``init``,
  ``push``, ``pull``, ``mode``).

Running ``gcloud-switch`` without a sub-command starts the interactive UI
instead (see :mod:`gcloud_switch.tui`).
"""
