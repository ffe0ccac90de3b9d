#!/usr/bin/env python3
"""
Default values and filenames for the MVD lifecycle pipelines.

Single place for every literal the deploy and teardown pipelines share:
config file names, tool lists, image and workload names, Terraform state
patterns and the ingress-nginx manifest location.
"""

# ============================================================================
# Configuration Filenames
# ============================================================================

# Optional TOML config in the work directory (plain or Jinja2 template)
CONFIG_FILE = 'mvd.toml'
CONFIG_TEMPLATE = 'mvd.toml.j2'

# Environment variable prefix for overrides (MVD_CLUSTER_NAME, ...)
ENV_PREFIX = 'MVD_'

# ============================================================================
# Deployment Defaults
# ============================================================================

DEFAULT_CLUSTER_NAME = 'mvd'
DEFAULT_NAMESPACE = 'mvd'
DEFAULT_CLUSTER_CONFIG = 'deployment/kind.config.yaml'
DEFAULT_INFRA_DIR = 'deployment'
DEFAULT_SEED_SCRIPT = 'seed-k8s.sh'

# Images produced by `gradlew -Ppersistence=true dockerize`
DEFAULT_IMAGES = [
    'controlplane:latest',
    'dataplane:latest',
    'identity-hub:latest',
    'catalog-server:latest',
    'issuerservice:latest',
]

# Pods that must reach Running/Completed before seeding makes sense
DEFAULT_KEY_RESOURCES = [
    'consumer-postgres',
    'provider-postgres',
    'issuer-postgres',
    'consumer-vault',
    'provider-vault',
    'dataspace-issuer-server',
]

# Workload wait: 60 attempts x 5s
DEFAULT_WORKLOAD_ATTEMPTS = 60
DEFAULT_WORKLOAD_INTERVAL = 5.0

# ============================================================================
# Ingress NGINX (kind provider)
# ============================================================================

INGRESS_MANIFEST_URL = (
    'https://raw.githubusercontent.com/kubernetes/ingress-nginx/main/'
    'deploy/static/provider/kind/deploy.yaml'
)
INGRESS_NAMESPACE = 'ingress-nginx'
INGRESS_SELECTOR = 'app.kubernetes.io/component=controller'
INGRESS_TIMEOUT = 90.0
INGRESS_INTERVAL = 5.0

# ============================================================================
# Preflight
# ============================================================================

REQUIRED_TOOLS = ['docker', 'kind', 'kubectl', 'terraform', 'java', 'git']
SEED_TOOLS = ['node', 'npm', 'newman']
MIN_JAVA_MAJOR = 17

# ============================================================================
# Terraform State (removed by teardown)
# ============================================================================

TERRAFORM_STATE_GLOB = 'terraform.tfstate*'
TERRAFORM_LOCK_FILE = '.terraform.lock.hcl'
TERRAFORM_CACHE_DIR = '.terraform'

# Pod STATUS column values that count as ready
READY_POD_STATUSES = ('Running', 'Completed')
