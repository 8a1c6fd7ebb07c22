"""Core provisioning logic.

Module Structure:
    - identity/       : Identity admin API client, auth helper, tenant/user services
    - catalog.py      : Desired tenants and users
    - reconciler.py   : Converges the Identity service to the catalog
    - manifest.py     : Record of ensured names shared with teardown
    - teardown.py     : Tolerant removal of manifest entities
    - batching.py     : Bounded-concurrency batches
    - availability.py : Reachability probe used before provisioning
    - provisioning.py : Setup entry point (probe, reconcile, write manifest)

These modules are NOT auto-imported; import explicitly when needed.
"""
