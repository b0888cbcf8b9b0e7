"""
Compose deferred outputs across resources.

The web project reads the API's URL, so the engine creates the API first.
Exports are derived from names the platform assigns; nothing blocks while
declaring.

Run: python examples/composed_outputs.py
"""

from moraine import ProvisioningRun, LocalProvider, interpolate
from moraine.config import LocalConfig

run = ProvisioningRun(name="composed")

api = run.declare("vercel:Project", "church-sas-api-preprod", {
    "name": "church-sas-api-preprod",
    "framework": "other",
    "root_directory": "apps/api",
})
api_url = interpolate("https://{name}.vercel.app", name=api.name)

web = run.declare("vercel:Project", "church-sas-web-preprod", {
    "name": "church-sas-web-preprod",
    "framework": "vite",
    "root_directory": "apps/web",
    "environment": {"VITE_API_URL": api_url},
}, attributes=("id", "name", "environment"))

run.export("apiPreprodUrl", api_url)
run.export("webPreprodUrl", interpolate("https://{name}.vercel.app", name=web.name))
run.export("webApiUrl", web.environment.map(lambda env: env["VITE_API_URL"]))

print("Creation order:")
for i, level in enumerate(run.creation_order(), 1):
    print(f"  {i}. {', '.join(h.urn for h in level)}")

# Simulate a failure by passing failures={"church-sas-api-preprod": "creation quota exceeded"}
provider = LocalProvider(config=LocalConfig())
provider.apply(run)
result = run.complete()

for name, value in result.outputs.items():
    print(f"{name} = {value}")
for name, message in result.failures.items():
    print(f"{name} failed: {message}")
