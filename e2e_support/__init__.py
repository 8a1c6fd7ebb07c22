"""E2E test-data support package for the multi-tenant SaaS suite.

To provision the e2e tenants and users:
    from e2e_support.core.provisioning import provision

To clean them up after the run:
    from e2e_support.core.teardown import teardown

To talk to the Identity service directly:
    from e2e_support.core.identity import AuthHelper, IdentityClient
"""
