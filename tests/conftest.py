"""Shared fixtures: a valid configuration document and a writer for it."""

import copy
import json

import pytest

VALID_DOCUMENT = {
    "aws": {"account": "123456789012", "region": "us-east-1"},
    "S3TablesEmrServerless": {
        "vpc": {
            "cidr": "10.0.0.0/16",
            "natGateways": 1,
            "privateSubnetCidrMask": 20,
            "publicSubnetCidrMask": 24,
            "azCount": 2,
        },
        "s3Tables": {"tableBucketName": "dev-tables"},
        "emrServerless": {
            "applicationName": "dev-spark",
            "usePrivateSubnets": True,
            "jobArtifactsBucketName": "dev-artifacts",
            "jobLogsBucketName": "dev-logs",
            "executionRoleName": "dev-emr-execution",
            "maximumCapacity": {"cpu": "4 vCPU", "memory": "16 GB"},
        },
    },
}

OLEANDER_SECTION = {
    "organizationId": "org-123",
    "roleNames": {
        "s3tablesAccessRole": "OleanderS3TablesAccess",
        "emrControllerRole": "OleanderEmrController",
    },
}

INITIAL_CAPACITY = {
    "driver": {"workerCount": 1, "cpu": "2 vCPU", "memory": "8 GB"},
    "executor": {"workerCount": 3, "cpu": "4 vCPU", "memory": "16 GB", "disk": "64 GB"},
}


@pytest.fixture
def document():
    """A fresh, mutable copy of a valid configuration document."""
    return copy.deepcopy(VALID_DOCUMENT)


@pytest.fixture
def write_config(tmp_path):
    """Write a document as ``<tmp>/<env>.json`` and return the directory."""

    def _write(doc, env="dev"):
        (tmp_path / f"{env}.json").write_text(json.dumps(doc), encoding="utf-8")
        return tmp_path

    return _write
