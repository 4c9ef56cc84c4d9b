"""Tests for pure helpers"""

import pytest

from components import _helpers
from stack_config import parse_config
from tests.conftest import INITIAL_CAPACITY, VALID_DOCUMENT


class TestTableBucketArn:
    def test_builds_s3tables_arn(self):
        assert (
            _helpers.table_bucket_arn("us-east-1", "123456789012", "tables")
            == "arn:aws:s3tables:us-east-1:123456789012:bucket/tables"
        )

    def test_is_deterministic(self):
        first = _helpers.table_bucket_arn("eu-west-1", "111122223333", "t")
        second = _helpers.table_bucket_arn("eu-west-1", "111122223333", "t")
        assert first == second

    def test_resources_include_tables(self):
        arn = "arn:aws:s3tables:us-east-1:123456789012:bucket/tables"
        assert _helpers.table_bucket_resources(arn) == [arn, f"{arn}/table/*"]


class TestS3Names:
    def test_bucket_arn(self):
        assert _helpers.s3_bucket_arn("logs") == "arn:aws:s3:::logs"

    def test_objects_arn(self):
        assert _helpers.s3_objects_arn("arn:aws:s3:::logs") == "arn:aws:s3:::logs/*"

    def test_emr_log_uri(self):
        assert _helpers.emr_log_uri("logs") == "s3://logs/emr-serverless/"

    def test_endpoint_services(self):
        assert _helpers.s3_endpoint_service("us-east-1") == "com.amazonaws.us-east-1.s3"
        assert (
            _helpers.s3tables_endpoint_service("us-east-1")
            == "com.amazonaws.us-east-1.s3tables"
        )


class TestPlanSubnets:
    def test_public_then_private_per_az(self):
        plans = _helpers.plan_subnets("10.0.0.0/16", 2, public_mask=24, private_mask=20)
        assert [(p.tier, p.az_index, p.cidr) for p in plans] == [
            ("public", 0, "10.0.0.0/24"),
            ("public", 1, "10.0.1.0/24"),
            ("private", 0, "10.0.16.0/20"),
            ("private", 1, "10.0.32.0/20"),
        ]

    def test_names_are_one_based(self):
        plans = _helpers.plan_subnets("10.0.0.0/16", 1, public_mask=24, private_mask=24)
        assert [p.name for p in plans] == ["public-1", "private-1"]

    def test_subnets_do_not_overlap(self):
        import ipaddress

        plans = _helpers.plan_subnets("10.1.0.0/16", 3, public_mask=22, private_mask=19)
        networks = [ipaddress.IPv4Network(p.cidr) for p in plans]
        for i, a in enumerate(networks):
            assert a.subnet_of(ipaddress.IPv4Network("10.1.0.0/16"))
            for b in networks[i + 1 :]:
                assert not a.overlaps(b)

    def test_mask_shorter_than_vpc(self):
        with pytest.raises(ValueError, match="does not fit"):
            _helpers.plan_subnets("10.0.0.0/16", 2, public_mask=12, private_mask=20)

    def test_vpc_too_small(self):
        with pytest.raises(ValueError, match="no room"):
            _helpers.plan_subnets("10.0.0.0/24", 2, public_mask=25, private_mask=25)

    def test_invalid_cidr(self):
        with pytest.raises(ValueError, match="Invalid VPC CIDR"):
            _helpers.plan_subnets("not-a-cidr", 2, public_mask=24, private_mask=24)


class TestNatGatewayCount:
    def test_capped_at_az_count(self):
        assert _helpers.nat_gateway_count(5, 2) == 2

    def test_keeps_smaller_request(self):
        assert _helpers.nat_gateway_count(1, 3) == 1

    def test_zero(self):
        assert _helpers.nat_gateway_count(0, 3) == 0


def _emr(**overrides):
    doc = {**VALID_DOCUMENT}
    emr = {**VALID_DOCUMENT["S3TablesEmrServerless"]["emrServerless"], **overrides}
    doc["S3TablesEmrServerless"] = {**VALID_DOCUMENT["S3TablesEmrServerless"], "emrServerless": emr}
    return parse_config(doc).s3_tables_emr_serverless.emr_serverless


class TestInitialCapacityArgs:
    def test_absent_flag_means_none(self):
        assert _helpers.initial_capacity_args(_emr()) is None

    def test_disabled_ignores_block(self):
        config = _emr(initialCapacityEnabled=False, initialCapacity=INITIAL_CAPACITY)
        assert _helpers.initial_capacity_args(config) is None

    def test_enabled_without_block_raises(self):
        with pytest.raises(_helpers.InitialCapacityError, match="initialCapacity is required"):
            _helpers.initial_capacity_args(_emr(initialCapacityEnabled=True))

    def test_error_is_not_a_config_error(self):
        from stack_config import ConfigError

        assert not issubclass(_helpers.InitialCapacityError, ConfigError)

    def test_driver_and_executor(self):
        config = _emr(initialCapacityEnabled=True, initialCapacity=INITIAL_CAPACITY)
        assert _helpers.initial_capacity_args(config) == [
            {
                "initial_capacity_type": "Driver",
                "initial_capacity_config": {
                    "worker_count": 1,
                    "worker_configuration": {"cpu": "2 vCPU", "memory": "8 GB"},
                },
            },
            {
                "initial_capacity_type": "Executor",
                "initial_capacity_config": {
                    "worker_count": 3,
                    "worker_configuration": {
                        "cpu": "4 vCPU",
                        "memory": "16 GB",
                        "disk": "64 GB",
                    },
                },
            },
        ]
