"""
Re-export Moraine outputs from a Pulumi program.

To use:
1. Save this file as __main__.py next to a Pulumi.yaml
2. pip install "moraine-infra[pulumi]"
3. Run: pulumi up
"""

from moraine import ProvisioningRun, LocalProvider
from moraine.pulumi_bridge import export_to_pulumi
from moraine.stacks import declare_church_sas

run = ProvisioningRun(name="church-sas")
declare_church_sas(run, repository="PabloReca/church-sas")

LocalProvider().apply(run)
export_to_pulumi(run.complete())
