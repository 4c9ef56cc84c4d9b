"""
Pure helpers for ARNs, subnet planning, and EMR capacity. Testable without
Pulumi runtime.

Used by the network component (plan_subnets, nat_gateway_count), the
S3 Tables + EMR component (table_bucket_arn, initial_capacity_args,
emr_log_uri) and the Oleander IAM component (s3_bucket_arn). No Pulumi
types; all functions accept and return plain Python types so they can be
unit-tested without a Pulumi stack.
"""

import ipaddress
from dataclasses import dataclass

from stack_config import EmrServerlessConfig, WorkerCapacity

PARTITION = "aws"
HTTPS_PORT = 443
EMR_LOG_PREFIX = "emr-serverless/"

PUBLIC_TIER = "public"
PRIVATE_TIER = "private"


class InitialCapacityError(ValueError):
    """Raised when initial capacity is enabled but no sizing is configured."""


def table_bucket_arn(
    region: str,
    account: str,
    table_bucket_name: str,
) -> str:
    """
    Return the S3 Tables bucket ARN.

    The ARN is fully determined by its inputs, so dependent policies can be
    written before the table bucket exists.
    """
    return f"arn:{PARTITION}:s3tables:{region}:{account}:bucket/{table_bucket_name}"


def table_bucket_resources(bucket_arn: str) -> list[str]:
    """The table bucket itself plus every table inside it."""
    return [bucket_arn, f"{bucket_arn}/table/*"]


def s3_bucket_arn(bucket_name: str) -> str:
    return f"arn:{PARTITION}:s3:::{bucket_name}"


def s3_objects_arn(bucket_arn: str) -> str:
    return f"{bucket_arn}/*"


def emr_log_uri(bucket_name: str) -> str:
    """S3 monitoring URI under which EMR Serverless writes job logs."""
    return f"s3://{bucket_name}/{EMR_LOG_PREFIX}"


def s3tables_endpoint_service(region: str) -> str:
    return f"com.amazonaws.{region}.s3tables"


def s3_endpoint_service(region: str) -> str:
    return f"com.amazonaws.{region}.s3"


@dataclass(frozen=True)
class SubnetPlan:
    """One subnet: its tier, the AZ slot it lands in, and its CIDR block."""

    tier: str
    az_index: int
    cidr: str

    @property
    def name(self) -> str:
        return f"{self.tier}-{self.az_index + 1}"


def plan_subnets(
    vpc_cidr: str,
    az_count: int,
    public_mask: int,
    private_mask: int,
) -> list[SubnetPlan]:
    """
    Carve public then private subnets out of ``vpc_cidr``, one per AZ per tier.

    Blocks are allocated in order from the start of the VPC range, each
    aligned to its own prefix length, so the layout is stable for a given
    input.

    Raises:
        ValueError: The CIDR is not an IPv4 network, a mask is shorter than
            the VPC prefix, or the VPC is too small for every subnet.
    """
    try:
        vpc = ipaddress.IPv4Network(vpc_cidr)
    except ValueError as e:
        raise ValueError(f"Invalid VPC CIDR {vpc_cidr!r}: {e}") from e

    cursor = int(vpc.network_address)
    end = int(vpc.broadcast_address)
    plans: list[SubnetPlan] = []
    for tier, mask in ((PUBLIC_TIER, public_mask), (PRIVATE_TIER, private_mask)):
        if not vpc.prefixlen <= mask <= 32:
            raise ValueError(
                f"{tier} subnet mask /{mask} does not fit inside VPC {vpc_cidr}"
            )
        size = 2 ** (32 - mask)
        for az_index in range(az_count):
            # Round up to the next boundary of this block size.
            cursor = -(-cursor // size) * size
            if cursor + size - 1 > end:
                raise ValueError(
                    f"VPC {vpc_cidr} has no room for {az_count} {tier} subnets of /{mask}"
                )
            subnet = ipaddress.IPv4Network((cursor, mask))
            plans.append(SubnetPlan(tier=tier, az_index=az_index, cidr=str(subnet)))
            cursor += size
    return plans


def nat_gateway_count(
    requested: int,
    az_count: int,
) -> int:
    """NAT gateways live one per public subnet, so cap at the AZ count."""
    return max(0, min(requested, az_count))


def _worker_capacity_args(worker: WorkerCapacity) -> dict:
    return {
        "worker_count": worker.worker_count,
        "worker_configuration": worker.worker_configuration(),
    }


def initial_capacity_args(
    config: EmrServerlessConfig,
) -> list[dict] | None:
    """
    Build the Driver/Executor initial capacity entries.

    Returns None unless ``initial_capacity_enabled`` is set; a configured
    ``initial_capacity`` block is ignored while disabled.

    Raises:
        InitialCapacityError: Enabled without an ``initial_capacity`` block.
    """
    if not config.initial_capacity_enabled:
        return None
    if config.initial_capacity is None:
        raise InitialCapacityError(
            "S3TablesEmrServerless.emrServerless.initialCapacity is required "
            "when initialCapacityEnabled is true"
        )
    return [
        {
            "initial_capacity_type": "Driver",
            "initial_capacity_config": _worker_capacity_args(config.initial_capacity.driver),
        },
        {
            "initial_capacity_type": "Executor",
            "initial_capacity_config": _worker_capacity_args(
                config.initial_capacity.executor
            ),
        },
    ]
