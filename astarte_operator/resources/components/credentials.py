from typing import Tuple
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from kubernetes_asyncio.client import V1Secret
from astarte_operator.resources.astarte import Astarte
from astarte_operator.resources.components.base import AstarteComponentResource

RSA_KEY_SIZE = 2048


def generate_key_pair() -> Tuple[str, str]:
    """Return a fresh (private PEM, public PEM) RSA key pair."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=RSA_KEY_SIZE)
    private_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return private_pem.decode(), public_pem.decode()


class Credentials(AstarteComponentResource):
    """Housekeeping key pair and the Erlang clustering cookie."""

    COMPONENT_TYPE = "credentials"

    def __init__(self, astarte: Astarte):
        super().__init__(astarte, "credentials")

    @property
    def private_key_secret_name(self) -> str:
        return self.astarte.resource_name("housekeeping-private-key")

    @property
    def public_key_secret_name(self) -> str:
        return self.astarte.resource_name("housekeeping-public-key")

    @property
    def erlang_cookie_secret_name(self) -> str:
        return self.astarte.resource_name("erlang-clustering-cookie")

    async def ensure(self) -> None:
        await self.ensure_housekeeping_key()
        await self.ensure_erlang_cookie(self.erlang_cookie_secret_name)

    async def ensure_housekeeping_key(self) -> None:
        public_key = await self.fetch_secret(
            self.core_v1_api, self.public_key_secret_name, self.namespace
        )
        if public_key is not None:
            return

        private_key = await self.fetch_secret(
            self.core_v1_api, self.private_key_secret_name, self.namespace
        )
        if private_key is not None:
            self.logger.info(
                "Existing Housekeeping private key found with no matching public key: deleting it."
            )
            await self.delete_secret(self.core_v1_api, self.private_key_secret_name, self.namespace)

        self.logger.info("Housekeeping key not found: creating one.")
        private_pem, public_pem = generate_key_pair()
        await self.converge_secret(
            V1Secret(
                metadata=self.object_meta(self.private_key_secret_name),
                type="Opaque",
                string_data={"private-key": private_pem},
            )
        )
        await self.converge_secret(
            V1Secret(
                metadata=self.object_meta(self.public_key_secret_name),
                type="Opaque",
                string_data={"public-key": public_pem},
            )
        )

