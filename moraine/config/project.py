"""
Configuration classes for hosted-project stacks.

A stack definition lists the projects to declare and the URLs to export
from them. Definitions are usually loaded from YAML (see loader.py).
"""

import re
from string import Formatter
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator


class GitRepositoryConfig(BaseModel):
    """
    Git wiring for a hosted project.

    Example:
        GitRepositoryConfig(repo="PabloReca/church-sas", production_branch="release")
    """

    type: Literal["github", "gitlab", "bitbucket"] = Field(
        default="github", description="Git provider"
    )
    repo: str = Field(..., description="Repository as owner/name")
    production_branch: str = Field(
        default="main", description="Branch deployed to production"
    )

    class Config:
        extra = "forbid"


class ProjectConfig(BaseModel):
    """
    A hosted project (one app in one environment).

    Example:
        ProjectConfig(
            name="church-sas-web-prod",
            framework="vite",
            root_directory="apps/web",
            git_repository=GitRepositoryConfig(
                repo="PabloReca/church-sas",
                production_branch="release",
            ),
        )
    """

    name: str = Field(..., min_length=1, description="Project name on the platform")
    framework: str | None = Field(
        default=None, description="Framework preset (vite, other, hono, ...)"
    )
    root_directory: str | None = Field(
        default=None, description="Directory of the app inside the repository"
    )
    git_repository: GitRepositoryConfig | None = Field(
        default=None, description="Optional Git wiring"
    )
    environment: dict[str, str] = Field(
        default_factory=dict, description="Environment variables for the project"
    )

    class Config:
        extra = "forbid"

    def to_inputs(self) -> dict[str, Any]:
        """Resource inputs for declaring this project."""
        return self.model_dump(exclude_none=True)


class ExportConfig(BaseModel):
    """
    A URL derived from a project attribute.

    The template is formatted with the resolved attribute as {value}.
    """

    name: str = Field(..., min_length=1, description="Export name")
    project: str = Field(..., description="Name of the project to read from")
    attribute: str = Field(default="name", description="Project attribute to read")
    template: str = Field(
        default="https://{value}.vercel.app", description="Format string for the export"
    )

    class Config:
        extra = "forbid"

    @field_validator("template")
    @classmethod
    def _check_template(cls, template: str) -> str:
        fields = [field for _, field, _, _ in Formatter().parse(template) if field is not None]
        unknown = sorted({field for field in fields if re.split(r"[.\[]", field)[0] != "value"})
        if unknown:
            names = ", ".join("{" + field + "}" for field in unknown)
            raise ValueError(f"template may only use the {{value}} placeholder, got {names}")
        return template


class StackConfig(BaseModel):
    """
    A complete stack definition.

    Example YAML:
        name: church-sas
        projects:
          - name: church-sas-api-preprod
            framework: other
            root_directory: apps/api
        exports:
          - name: apiPreprodUrl
            project: church-sas-api-preprod
    """

    name: str = Field(..., min_length=1, description="Stack name")
    resource_type: str = Field(
        default="vercel:Project", description="Resource type used for every project"
    )
    projects: list[ProjectConfig] = Field(default_factory=list)
    exports: list[ExportConfig] = Field(default_factory=list)

    class Config:
        extra = "forbid"

    @model_validator(mode="after")
    def _check_names(self) -> "StackConfig":
        project_names = [project.name for project in self.projects]
        duplicates = sorted({name for name in project_names if project_names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate project names: {', '.join(duplicates)}")

        export_names = [export.name for export in self.exports]
        duplicates = sorted({name for name in export_names if export_names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate export names: {', '.join(duplicates)}")

        unknown = sorted({export.project for export in self.exports} - set(project_names))
        if unknown:
            raise ValueError(f"Exports reference unknown projects: {', '.join(unknown)}")
        return self
