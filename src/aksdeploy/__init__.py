"""
aksdeploy core package.

Deploys the QR code application's Kubernetes manifests to Azure Kubernetes
Service once the infrastructure and image pipelines have succeeded:

- Upstream gates and artifact retrieval live in `aksdeploy.upstream` and
  `aksdeploy.pipeline.verify`.
- Template rendering lives in `aksdeploy.manifests`.
- Cloud and cluster access goes through the protocols in `aksdeploy.clients`.
- The end-to-end run is `aksdeploy.pipeline.run.run_deployment`, exposed by
  the Typer CLI in `aksdeploy.cli`.

Configuration:
- Shared filesystem anchors and fixed names live in `aksdeploy.global_config`.
- Runtime settings (namespace, timeouts, credentials) come from the
  environment via `aksdeploy.config`.
"""
