"""Tests for IAM policy documents"""

from components import _policies

TABLES = "arn:aws:s3tables:us-east-1:123456789012:bucket/tables"
ARTIFACTS = "arn:aws:s3:::artifacts"
LOGS = "arn:aws:s3:::logs"
APP = "arn:aws:emr-serverless:us-east-1:123456789012:/applications/00abc"
EXEC_ROLE = "arn:aws:iam::123456789012:role/exec"


def _by_sid(document):
    return {s["Sid"]: s for s in document["Statement"]}


class TestTrustPolicies:
    def test_service_trust(self):
        doc = _policies.service_trust_policy("emr-serverless.amazonaws.com")
        (statement,) = doc["Statement"]
        assert statement["Principal"] == {"Service": "emr-serverless.amazonaws.com"}
        assert statement["Action"] == "sts:AssumeRole"

    def test_cross_account_requires_external_id(self):
        doc = _policies.cross_account_trust_policy("579897423473", "org-123")
        (statement,) = doc["Statement"]
        assert statement["Principal"] == {"AWS": "arn:aws:iam::579897423473:root"}
        assert statement["Condition"] == {"StringEquals": {"sts:ExternalId": "org-123"}}


class TestDenyInsecureTransport:
    def test_denies_without_tls(self):
        doc = _policies.deny_insecure_transport_policy(LOGS)
        (statement,) = doc["Statement"]
        assert statement["Effect"] == "Deny"
        assert statement["Resource"] == [LOGS, f"{LOGS}/*"]
        assert statement["Condition"] == {"Bool": {"aws:SecureTransport": "false"}}


class TestExecutionRolePolicy:
    def test_least_privilege_statements(self):
        statements = _by_sid(_policies.execution_role_policy(TABLES, ARTIFACTS, LOGS))
        assert statements["S3TablesAccess"]["Action"] == ["s3tables:*"]
        assert statements["S3TablesAccess"]["Resource"] == [TABLES, f"{TABLES}/table/*"]
        assert statements["ReadJobArtifacts"]["Action"] == ["s3:GetObject"]
        assert statements["ReadJobArtifacts"]["Resource"] == [f"{ARTIFACTS}/*"]
        assert statements["WriteJobLogs"]["Action"] == ["s3:PutObject"]
        assert statements["WriteJobLogs"]["Resource"] == [f"{LOGS}/*"]

    def test_version(self):
        doc = _policies.execution_role_policy(TABLES, ARTIFACTS, LOGS)
        assert doc["Version"] == "2012-10-17"


class TestS3TablesAccessRolePolicy:
    def test_scoped_to_table_bucket_only(self):
        (statement,) = _policies.s3tables_access_role_policy(TABLES)["Statement"]
        assert statement["Resource"] == [TABLES, f"{TABLES}/table/*"]


class TestEmrControllerRolePolicy:
    def test_statements(self):
        statements = _by_sid(_policies.emr_controller_role_policy(APP, EXEC_ROLE, LOGS))
        assert set(statements) == {
            "AllowStartJobRun",
            "AllowGetJobRun",
            "PassExecutionRole",
            "ReadJobLogsFromS3",
        }
        assert statements["AllowStartJobRun"]["Resource"] == [APP]
        assert statements["AllowGetJobRun"]["Resource"] == [f"{APP}/jobruns/*"]
        assert statements["ReadJobLogsFromS3"]["Resource"] == [f"{LOGS}/*"]

    def test_pass_role_limited_to_emr_serverless(self):
        statements = _by_sid(_policies.emr_controller_role_policy(APP, EXEC_ROLE, LOGS))
        pass_role = statements["PassExecutionRole"]
        assert pass_role["Resource"] == [EXEC_ROLE]
        assert pass_role["Condition"] == {
            "StringLike": {"iam:PassedToService": "emr-serverless.amazonaws.com"}
        }
