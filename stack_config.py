"""
Environment configuration loaded from ``config/<env>.json``.

Provides a typed, immutable view of the deployment settings. The environment
name comes from Pulumi stack config (``pulumi config set env dev``); the
document itself is plain JSON so it can be reviewed and diffed per
environment. Validation is declarative: ``_SCHEMA`` describes every section
and field, and ``validate_document`` walks it collecting every violation with
its dotted path, so a bad file is reported in one pass.
"""

import json
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping

import pulumi

CONFIG_DIR_NAME = "config"
CONFIG_EXTENSION = ".json"
ENV_CONTEXT_KEY = "env"


class ConfigError(Exception):
    """Base class for configuration problems detected before composition."""


class MissingEnvironmentError(ConfigError):
    """Raised when the ``env`` stack setting is absent or blank."""


class ConfigFileError(ConfigError):
    """Raised when the configuration file is missing, unreadable, or not JSON."""


@dataclass(frozen=True)
class Violation:
    """One failed check: dotted field path and what was expected there."""

    path: str
    expected: str

    def __str__(self) -> str:
        return f"Expected {self.expected} at {self.path}"


class ConfigValidationError(ConfigError):
    """Raised when the document does not match the schema.

    Carries every violation found, not only the first.
    """

    def __init__(self, source: str, violations: list[Violation]):
        self.source = source
        self.violations = list(violations)
        details = "\n".join(f"  - {v}" for v in self.violations)
        super().__init__(f"Invalid configuration in {source}:\n{details}")


# Leaf checks return None when the value is acceptable, else the expectation.
Check = Callable[[Any], str | None]


def _non_empty_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return None
    return "non-empty string"


def _whole_number(value: Any) -> str | None:
    # bool is an int subclass; JSON true must not pass as 1.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return "whole number"
    # json accepts NaN and Infinity literals.
    if isinstance(value, float) and not (math.isfinite(value) and value.is_integer()):
        return "whole number"
    return None


def _boolean(value: Any) -> str | None:
    return None if isinstance(value, bool) else "boolean"


def _positive_int(value: Any) -> str | None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        return "positive integer"
    return None


@dataclass(frozen=True)
class OptionalField:
    """Leaf field that is checked only when present."""

    check: Check


@dataclass(frozen=True)
class Section:
    """Nested object. Optional sections are skipped when absent or null."""

    fields: Mapping[str, Any]
    optional: bool = False


_WORKER_CAPACITY = Section(
    {
        "workerCount": _positive_int,
        "cpu": _non_empty_str,
        "memory": _non_empty_str,
        "disk": OptionalField(_non_empty_str),
    }
)

_SCHEMA = Section(
    {
        "aws": Section(
            {
                "account": _non_empty_str,
                "region": _non_empty_str,
            }
        ),
        "S3TablesEmrServerless": Section(
            {
                "vpc": Section(
                    {
                        "cidr": _non_empty_str,
                        "natGateways": _whole_number,
                        "privateSubnetCidrMask": _whole_number,
                        "publicSubnetCidrMask": _whole_number,
                        "azCount": _positive_int,
                    }
                ),
                "s3Tables": Section({"tableBucketName": _non_empty_str}),
                "emrServerless": Section(
                    {
                        "applicationName": _non_empty_str,
                        "releaseLabel": OptionalField(_non_empty_str),
                        "usePrivateSubnets": _boolean,
                        "jobArtifactsBucketName": _non_empty_str,
                        "jobLogsBucketName": _non_empty_str,
                        "executionRoleName": _non_empty_str,
                        "initialCapacityEnabled": OptionalField(_boolean),
                        "initialCapacity": Section(
                            {
                                "driver": _WORKER_CAPACITY,
                                "executor": _WORKER_CAPACITY,
                            },
                            optional=True,
                        ),
                        "maximumCapacity": Section(
                            {
                                "cpu": _non_empty_str,
                                "memory": _non_empty_str,
                                "disk": OptionalField(_non_empty_str),
                            }
                        ),
                    }
                ),
            }
        ),
        "OleanderIAM": Section(
            {
                "organizationId": _non_empty_str,
                "trustedAccountId": OptionalField(_non_empty_str),
                "roleNames": Section(
                    {
                        "s3tablesAccessRole": _non_empty_str,
                        "emrControllerRole": _non_empty_str,
                    }
                ),
            },
            optional=True,
        ),
    }
)


def _join(prefix: str, key: str) -> str:
    return f"{prefix}.{key}" if prefix else key


def validate_document(
    document: Any,
    schema: Section = _SCHEMA,
    path: str = "",
) -> list[Violation]:
    """
    Check ``document`` against ``schema`` and return every violation.

    A missing or mistyped section is reported once; its children are not
    descended into, so the list never repeats the same root cause.

    Optional sections are checked whenever present, independent of any flag
    that enables them: a malformed ``initialCapacity`` block is rejected even
    while ``initialCapacityEnabled`` is false or absent.
    """
    if not isinstance(document, dict):
        return [Violation(path or "<root>", "object")]

    violations: list[Violation] = []
    for key, rule in schema.fields.items():
        field_path = _join(path, key)
        present = key in document
        value = document.get(key)

        if isinstance(rule, Section):
            if rule.optional and value is None:
                continue
            violations.extend(validate_document(value, rule, field_path))
        elif isinstance(rule, OptionalField):
            if not present:
                continue
            expected = rule.check(value)
            if expected:
                violations.append(Violation(field_path, expected))
        else:
            expected = rule(value)
            if expected:
                violations.append(Violation(field_path, expected))
    return violations


@dataclass(frozen=True)
class AwsEnvConfig:
    """Target account and region for every resource."""

    account: str
    region: str


@dataclass(frozen=True)
class VpcConfig:
    """
    VPC layout parameters.

    Attributes:
        cidr: VPC IPv4 CIDR block (e.g. "10.0.0.0/16").
        nat_gateways: Requested NAT gateways; capped at ``az_count``.
        private_subnet_cidr_mask: Prefix length of each private subnet.
        public_subnet_cidr_mask: Prefix length of each public subnet.
        az_count: Number of availability zones to spread subnets across.
    """

    cidr: str
    nat_gateways: int
    private_subnet_cidr_mask: int
    public_subnet_cidr_mask: int
    az_count: int


@dataclass(frozen=True)
class S3TablesConfig:
    table_bucket_name: str


@dataclass(frozen=True)
class MaximumCapacity:
    """Ceiling for the whole application. ``disk`` is omitted when unset."""

    cpu: str
    memory: str
    disk: str | None = None

    def as_args(self) -> dict[str, str]:
        args = {"cpu": self.cpu, "memory": self.memory}
        if self.disk is not None:
            args["disk"] = self.disk
        return args


@dataclass(frozen=True)
class WorkerCapacity:
    """Pre-initialized workers for one role (driver or executor)."""

    worker_count: int
    cpu: str
    memory: str
    disk: str | None = None

    def worker_configuration(self) -> dict[str, str]:
        args = {"cpu": self.cpu, "memory": self.memory}
        if self.disk is not None:
            args["disk"] = self.disk
        return args


@dataclass(frozen=True)
class InitialCapacity:
    driver: WorkerCapacity
    executor: WorkerCapacity


@dataclass(frozen=True)
class EmrServerlessConfig:
    """
    EMR Serverless application settings.

    Attributes:
        application_name: Application name shown in the EMR console.
        use_private_subnets: Place the application in private (NAT egress)
            subnets when True, public subnets otherwise.
        job_artifacts_bucket_name: Bucket holding job code and dependencies.
        job_logs_bucket_name: Bucket receiving job logs.
        execution_role_name: IAM role name assumed by job runs.
        maximum_capacity: Application-wide resource ceiling.
        release_label: EMR release; None means the component default.
        initial_capacity_enabled: Whether to pre-warm workers.
        initial_capacity: Pre-warmed worker sizing, required when enabled.
    """

    application_name: str
    use_private_subnets: bool
    job_artifacts_bucket_name: str
    job_logs_bucket_name: str
    execution_role_name: str
    maximum_capacity: MaximumCapacity
    release_label: str | None = None
    initial_capacity_enabled: bool = False
    initial_capacity: InitialCapacity | None = None


@dataclass(frozen=True)
class S3TablesEmrServerlessConfig:
    vpc: VpcConfig
    s3_tables: S3TablesConfig
    emr_serverless: EmrServerlessConfig


@dataclass(frozen=True)
class OleanderRoleNames:
    s3tables_access_role: str
    emr_controller_role: str


@dataclass(frozen=True)
class OleanderIamConfig:
    """
    Cross-account access for the Oleander operator.

    Attributes:
        organization_id: Value the caller must present as ``sts:ExternalId``.
        role_names: Names of the two roles to create.
        trusted_account_id: Overrides the built-in Oleander account id.
    """

    organization_id: str
    role_names: OleanderRoleNames
    trusted_account_id: str | None = None


@dataclass(frozen=True)
class AppConfig:
    aws: AwsEnvConfig
    s3_tables_emr_serverless: S3TablesEmrServerlessConfig
    oleander_iam: OleanderIamConfig | None = field(default=None)


def _worker(raw: dict) -> WorkerCapacity:
    return WorkerCapacity(
        worker_count=raw["workerCount"],
        cpu=raw["cpu"],
        memory=raw["memory"],
        disk=raw.get("disk"),
    )


def _build(document: dict) -> AppConfig:
    """Map a validated document onto the dataclass tree."""
    aws = document["aws"]
    stack = document["S3TablesEmrServerless"]
    vpc = stack["vpc"]
    emr = stack["emrServerless"]
    maximum = emr["maximumCapacity"]

    initial_capacity = None
    if emr.get("initialCapacity") is not None:
        initial_capacity = InitialCapacity(
            driver=_worker(emr["initialCapacity"]["driver"]),
            executor=_worker(emr["initialCapacity"]["executor"]),
        )

    oleander = None
    if document.get("OleanderIAM") is not None:
        raw = document["OleanderIAM"]
        oleander = OleanderIamConfig(
            organization_id=raw["organizationId"],
            role_names=OleanderRoleNames(
                s3tables_access_role=raw["roleNames"]["s3tablesAccessRole"],
                emr_controller_role=raw["roleNames"]["emrControllerRole"],
            ),
            trusted_account_id=raw.get("trustedAccountId"),
        )

    return AppConfig(
        aws=AwsEnvConfig(account=aws["account"], region=aws["region"]),
        s3_tables_emr_serverless=S3TablesEmrServerlessConfig(
            vpc=VpcConfig(
                cidr=vpc["cidr"],
                nat_gateways=int(vpc["natGateways"]),
                private_subnet_cidr_mask=int(vpc["privateSubnetCidrMask"]),
                public_subnet_cidr_mask=int(vpc["publicSubnetCidrMask"]),
                az_count=vpc["azCount"],
            ),
            s3_tables=S3TablesConfig(
                table_bucket_name=stack["s3Tables"]["tableBucketName"],
            ),
            emr_serverless=EmrServerlessConfig(
                application_name=emr["applicationName"],
                use_private_subnets=emr["usePrivateSubnets"],
                job_artifacts_bucket_name=emr["jobArtifactsBucketName"],
                job_logs_bucket_name=emr["jobLogsBucketName"],
                execution_role_name=emr["executionRoleName"],
                maximum_capacity=MaximumCapacity(
                    cpu=maximum["cpu"],
                    memory=maximum["memory"],
                    disk=maximum.get("disk"),
                ),
                release_label=emr.get("releaseLabel"),
                initial_capacity_enabled=emr.get("initialCapacityEnabled", False),
                initial_capacity=initial_capacity,
            ),
        ),
        oleander_iam=oleander,
    )


def config_path(env_name: str, config_dir: str | Path | None = None) -> Path:
    """Resolve ``<config_dir>/<env_name>.json``; defaults to ``./config``."""
    base = Path(config_dir) if config_dir is not None else Path.cwd() / CONFIG_DIR_NAME
    return (base / f"{env_name}{CONFIG_EXTENSION}").resolve()


def parse_config(document: Any, source: str = "<document>") -> AppConfig:
    """Validate an already-parsed document and build the typed config."""
    violations = validate_document(document)
    if violations:
        raise ConfigValidationError(source, violations)
    return _build(document)


def load_config(env_name: str, config_dir: str | Path | None = None) -> AppConfig:
    """
    Read, parse, and validate the configuration for ``env_name``.

    Raises:
        ConfigFileError: The file is missing, unreadable, or not valid UTF-8 JSON.
        ConfigValidationError: One or more fields are missing or mistyped.
    """
    if not isinstance(env_name, str) or not env_name.strip():
        raise ConfigFileError("Environment name must be a non-empty string")

    path = config_path(env_name, config_dir)
    if not path.is_file():
        raise ConfigFileError(f"Config file not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as fh:
            document = json.load(fh)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ConfigFileError(f"Invalid JSON in {path}: {e}") from e
    except OSError as e:
        raise ConfigFileError(f"Cannot read config file {path}: {e}") from e

    return parse_config(document, source=str(path))


def require_environment(config: pulumi.Config) -> str:
    """
    Return the ``env`` stack setting naming the config file to load.

    Set it with ``pulumi config set env <name>``.
    """
    value = config.get(ENV_CONTEXT_KEY)
    if not isinstance(value, str) or not value.strip():
        raise MissingEnvironmentError(
            f"Missing required stack config: pulumi config set {ENV_CONTEXT_KEY} <environment>"
        )
    return value.strip()
