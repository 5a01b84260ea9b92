from .base import AstarteComponentResource, SyncOutcome
from .credentials import Credentials
from .erlang import ErlangConfiguration
from .priority_classes import PriorityClasses
from .rabbitmq import RabbitMQ
from .cassandra import Cassandra
from .cfssl import CFSSL
from .cfssl_ca_secret import CFSSLCASecret
from .microservices import AstarteMicroservice, MICROSERVICES, microservices
from .vernemq import VerneMQ
from .dashboard import Dashboard

__all__ = [
    "AstarteComponentResource",
    "SyncOutcome",
    "Credentials",
    "ErlangConfiguration",
    "PriorityClasses",
    "RabbitMQ",
    "Cassandra",
    "CFSSL",
    "CFSSLCASecret",
    "AstarteMicroservice",
    "MICROSERVICES",
    "microservices",
    "VerneMQ",
    "Dashboard",
]
