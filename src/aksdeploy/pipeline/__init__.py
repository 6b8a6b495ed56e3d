"""Pipeline orchestration layer.

Pipeline modules are organized by stage:
- `pipeline/verify.py` - upstream gates (terraform, docker)
- `pipeline/context.py` - Azure login and cluster context
- `pipeline/storage_secret.py` - storage connection-string secret
- `pipeline/deploy.py` - ordered manifest apply
- `pipeline/diagnostics.py` - state verification and pod-log collection
- `pipeline/run.py` - the full run across all stages

Import policy:
- CLI imports only from `pipeline.*` for orchestration.
- `pipeline.*` may call `upstream.*` and `clients.*` as helpers/adapters.
- `upstream.*` and `clients.*` must not call `pipeline.*`.
"""
