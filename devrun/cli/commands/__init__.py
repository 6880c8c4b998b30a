"""CLI command modules, one per tool or workflow.

Command Groups:
- action: GitHub Actions workflows (local via act, remote via gh)
- docker: Image registration, builds and Compose stacks
- hasura: Hasura console, migrations, metadata and schema
- machine: Project bootstrap and relocation
- meta: meta.json scaffolding
- misc: Miscellaneous shortcuts
- terraform: Cloud Run deployments through Terraform
- tmux: tmux sessions described in meta.json
- tunnel: Cloudflare Tunnel routing
- utils: Git shortcuts, ids, dependencies and templates
- vault: Vault KV secrets

Single commands:
- custom: Python scripts from the app's scripts folder
- routine: Routines declared in meta.json
"""

from .action import action_app
from .custom import custom
from .docker import docker_app
from .hasura import hasura_app
from .machine import machine_app
from .meta import meta_app
from .misc import misc_app
from .routine import routine
from .terraform import terraform_app
from .tmux import tmux_app
from .tunnel import tunnel_app
from .utils import utils_app
from .vault import vault_app

__all__ = [
    "action_app",
    "docker_app",
    "hasura_app",
    "machine_app",
    "meta_app",
    "misc_app",
    "terraform_app",
    "tmux_app",
    "tunnel_app",
    "utils_app",
    "vault_app",
    "custom",
    "routine",
]
