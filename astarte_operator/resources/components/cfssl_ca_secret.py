from kubernetes_asyncio.client import (
    V1Container,
    V1EnvVar,
    V1Job,
    V1JobSpec,
    V1ObjectMeta,
    V1PodSpec,
    V1PodTemplateSpec,
)
from astarte_operator.resources.astarte import Astarte
from astarte_operator.resources.components.base import AstarteComponentResource


class CFSSLCASecret(AstarteComponentResource):
    """One-shot Job exporting the CA generated by a StatefulSet CFSSL into a Secret.

    Only platforms before 1.0.0 need it. The Job is create-only: once it exists it is
    never replaced.
    """

    COMPONENT_TYPE = "cfssl_ca_secret"

    def __init__(self, astarte: Astarte):
        super().__init__(astarte, "cfssl-ca-secret")

    @property
    def job_name(self) -> str:
        return self.astarte.resource_name("cfssl-ca-secret")

    @property
    def secret_name(self) -> str:
        return self.astarte.resource_name("cfssl-ca")

    def prepare_job(self) -> V1Job:
        return V1Job(
            api_version="batch/v1",
            kind="Job",
            metadata=self.object_meta(self.job_name),
            spec=V1JobSpec(
                backoff_limit=6,
                template=V1PodTemplateSpec(
                    metadata=V1ObjectMeta(labels=self.labels.as_dict()),
                    spec=V1PodSpec(
                        restart_policy="OnFailure",
                        image_pull_secrets=self.astarte.image_pull_secrets(),
                        containers=[
                            V1Container(
                                name="cfssl-ca-secret",
                                image=self.astarte.conf.cfssl_ca_secret_job_image,
                                env=[
                                    V1EnvVar(name="NAMESPACE", value=self.namespace),
                                    V1EnvVar(
                                        name="CFSSL_URL",
                                        value=f"http://{self.astarte.resource_name('cfssl')}",
                                    ),
                                    V1EnvVar(name="SECRET_NAME", value=self.secret_name),
                                ],
                            )
                        ],
                    ),
                ),
            ),
        )

    async def ensure(self) -> None:
        if not self.spec.cfssl.deploy:
            return
        await self.converge_job(self.prepare_job())
