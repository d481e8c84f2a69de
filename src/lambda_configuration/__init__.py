"""
lambda_configuration — Hierarchical configuration for AWS Lambda functions.

Reads, writes and deletes configuration values held in a DynamoDB table,
either directly or through the caching core configuration function, and
provides KMS envelope encryption for sensitive values.
"""

from lambda_configuration.client import LambdaConfiguration
from lambda_configuration.crypto import EnvelopeCrypto
from lambda_configuration.exceptions import (
    ConfigurationError,
    CoreInvocationError,
    DocumentNotFound,
    UsageError,
)
from lambda_configuration.models import KEKCipher, Mode, Options, RequestDescriptor, RequestType

__all__ = [
    "ConfigurationError",
    "CoreInvocationError",
    "DocumentNotFound",
    "EnvelopeCrypto",
    "KEKCipher",
    "LambdaConfiguration",
    "Mode",
    "Options",
    "RequestDescriptor",
    "RequestType",
    "UsageError",
]
