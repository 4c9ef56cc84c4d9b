"""
IAM policy documents as plain dicts. Testable without Pulumi runtime.

Components resolve ARNs first (``Output.all(...).apply``) and then call these
builders, serialising the result with ``json.dumps``. Statement ids are
stable so policy diffs stay readable.
"""

from components._helpers import s3_objects_arn, table_bucket_resources

POLICY_VERSION = "2012-10-17"
EMR_SERVERLESS_SERVICE = "emr-serverless.amazonaws.com"


def _document(*statements: dict) -> dict:
    return {"Version": POLICY_VERSION, "Statement": list(statements)}


def _allow(
    sid: str,
    actions: list[str],
    resources: list[str],
    conditions: dict | None = None,
) -> dict:
    statement = {
        "Sid": sid,
        "Effect": "Allow",
        "Action": actions,
        "Resource": resources,
    }
    if conditions:
        statement["Condition"] = conditions
    return statement


def service_trust_policy(service: str) -> dict:
    """Trust policy letting an AWS service principal assume the role."""
    return _document(
        {
            "Effect": "Allow",
            "Principal": {"Service": service},
            "Action": "sts:AssumeRole",
        }
    )


def cross_account_trust_policy(
    account_id: str,
    external_id: str,
) -> dict:
    """
    Trust policy for another account, gated on ``sts:ExternalId``.

    The external id is the caller's organization id; it guards against the
    confused-deputy problem rather than acting as a secret.
    """
    return _document(
        {
            "Effect": "Allow",
            "Principal": {"AWS": f"arn:aws:iam::{account_id}:root"},
            "Action": "sts:AssumeRole",
            "Condition": {"StringEquals": {"sts:ExternalId": external_id}},
        }
    )


def deny_insecure_transport_policy(bucket_arn: str) -> dict:
    """Bucket policy rejecting any request not made over TLS."""
    return _document(
        {
            "Sid": "DenyInsecureTransport",
            "Effect": "Deny",
            "Principal": {"AWS": "*"},
            "Action": "s3:*",
            "Resource": [bucket_arn, s3_objects_arn(bucket_arn)],
            "Condition": {"Bool": {"aws:SecureTransport": "false"}},
        }
    )


def s3tables_access_statement(table_bucket_arn: str) -> dict:
    return _allow(
        "S3TablesAccess",
        ["s3tables:*"],
        table_bucket_resources(table_bucket_arn),
    )


def execution_role_policy(
    table_bucket_arn: str,
    artifacts_bucket_arn: str,
    logs_bucket_arn: str,
) -> dict:
    """Tables: full access. Artifacts: read only. Logs: write only."""
    return _document(
        s3tables_access_statement(table_bucket_arn),
        _allow("ReadJobArtifacts", ["s3:GetObject"], [s3_objects_arn(artifacts_bucket_arn)]),
        _allow("WriteJobLogs", ["s3:PutObject"], [s3_objects_arn(logs_bucket_arn)]),
    )


def s3tables_access_role_policy(table_bucket_arn: str) -> dict:
    return _document(s3tables_access_statement(table_bucket_arn))


def emr_controller_role_policy(
    application_arn: str,
    execution_role_arn: str,
    logs_bucket_arn: str,
) -> dict:
    """
    Start and inspect job runs, pass the execution role, read job logs.

    ``iam:PassRole`` is limited to EMR Serverless via ``iam:PassedToService``.
    """
    return _document(
        _allow("AllowStartJobRun", ["emr-serverless:StartJobRun"], [application_arn]),
        _allow("AllowGetJobRun", ["emr-serverless:GetJobRun"], [f"{application_arn}/jobruns/*"]),
        _allow(
            "PassExecutionRole",
            ["iam:PassRole"],
            [execution_role_arn],
            conditions={"StringLike": {"iam:PassedToService": EMR_SERVERLESS_SERVICE}},
        ),
        _allow("ReadJobLogsFromS3", ["s3:GetObject"], [s3_objects_arn(logs_bucket_arn)]),
    )
