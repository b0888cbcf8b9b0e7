"""
The church-sas stack: API and web apps, each in preprod and prod.

    church-sas-api-preprod   apps/api   apiPreprodUrl
    church-sas-api-prod      apps/api   apiProdUrl
    church-sas-web-preprod   apps/web   webPreprodUrl
    church-sas-web-prod      apps/web   webProdUrl

Git wiring is optional. When a repository is given, preprod projects
deploy the main branch and prod projects deploy the release branch.
"""

from moraine.config.project import (
    ExportConfig,
    GitRepositoryConfig,
    ProjectConfig,
    StackConfig,
)
from moraine.core.resource import ResourceHandle
from moraine.core.run import ProvisioningRun
from moraine.stacks.builder import declare_stack

STACK_NAME = "church-sas"
REPOSITORY = "PabloReca/church-sas"

PRODUCTION_BRANCHES = {
    "preprod": "main",
    "prod": "release",
}

APPS = {
    "api": {"root_directory": "apps/api", "export_prefix": "api"},
    "web": {"root_directory": "apps/web", "export_prefix": "web", "framework": "vite"},
}


def vercel_url(name: str) -> str:
    """URL of a project on the vercel.app domain."""
    return f"https://{name}.vercel.app"


def church_sas_config(
    repository: str | None = None,
    api_framework: str = "other",
) -> StackConfig:
    """
    Build the church-sas stack definition.

    Args:
        repository: GitHub repository (owner/name) to wire, or None
        api_framework: Framework preset for the API projects

    Returns:
        StackConfig with four projects and four URL exports
    """
    projects = []
    exports = []
    for app, settings in APPS.items():
        for environment, branch in PRODUCTION_BRANCHES.items():
            name = f"{STACK_NAME}-{app}-{environment}"
            git = None
            if repository:
                git = GitRepositoryConfig(repo=repository, production_branch=branch)
            projects.append(ProjectConfig(
                name=name,
                framework=settings.get("framework", api_framework),
                root_directory=settings["root_directory"],
                git_repository=git,
            ))
            exports.append(ExportConfig(
                name=f"{settings['export_prefix']}{environment.capitalize()}Url",
                project=name,
            ))

    return StackConfig(name=STACK_NAME, projects=projects, exports=exports)


def declare_church_sas(
    run: ProvisioningRun,
    repository: str | None = None,
    api_framework: str = "other",
) -> dict[str, ResourceHandle]:
    """Declare the church-sas projects and URL exports into run."""
    return declare_stack(run, church_sas_config(repository, api_framework))
