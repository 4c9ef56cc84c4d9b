"""
S3 Tables + EMR Serverless - Pulumi entrypoint.

Wires two ComponentResources using an environment config file and output
chaining:

- **S3TablesEmrServerless**: VPC, job artifacts/logs buckets, S3 Tables table
  bucket, execution role and EMR Serverless Spark application.
- **OleanderIam** (only when ``OleanderIAM`` is configured): cross-account
  roles scoped to the table bucket ARN, application ARN, execution role ARN
  and logs bucket exported by the first component.

The environment comes from ``pulumi config set env <name>`` and selects
``config/<name>.json``. All resources go through one AWS provider pinned to
the configured account and region.

Stack exports: table_bucket_name, table_bucket_arn,
emr_serverless_application_id, emr_serverless_application_arn,
job_artifacts_bucket_name, job_logs_bucket_name,
emr_serverless_execution_role_arn and, with OleanderIAM,
oleander_s3tables_access_role_arn, oleander_emr_serverless_controller_role_arn.
"""

import pulumi
import pulumi_aws as aws

from components import OleanderIam, S3TablesEmrServerless
from components._helpers import initial_capacity_args
from stack_config import load_config, require_environment


def _component_name(environment: str, prefix: str) -> str:
    return f"{prefix}-{environment}"


def main():
    """
    Load the environment config, build the components and export outputs.

    Any configuration or composition error is logged and re-raised so the
    Pulumi CLI exits non-zero before anything is deployed.
    """
    try:
        environment = require_environment(pulumi.Config())
        config = load_config(environment)
        # Fails on enabled-but-unsized initial capacity before the provider registers.
        initial_capacity_args(config.s3_tables_emr_serverless.emr_serverless)
    except Exception as e:
        pulumi.log.error(f"Invalid configuration: {e}")
        raise

    def name(prefix: str) -> str:
        return _component_name(environment, prefix)

    provider = aws.Provider(
        name("aws"),
        region=config.aws.region,
        allowed_account_ids=[config.aws.account],
    )
    opts = pulumi.ResourceOptions(provider=provider)

    try:
        primary = S3TablesEmrServerless(
            name=name("s3tables-emr"),
            config=config.s3_tables_emr_serverless,
            aws_env=config.aws,
            opts=opts,
        )
    except Exception as e:
        pulumi.log.error(f"Failed to compose S3TablesEmrServerless: {e}")
        raise

    outputs = [
        ("table_bucket_name", primary.table_bucket_name),
        ("table_bucket_arn", primary.table_bucket_arn),
        ("emr_serverless_application_id", primary.emr_serverless_application_id),
        ("emr_serverless_application_arn", primary.emr_serverless_application_arn),
        ("job_artifacts_bucket_name", primary.job_artifacts_bucket_name),
        ("job_logs_bucket_name", primary.job_logs_bucket_name),
        ("emr_serverless_execution_role_arn", primary.emr_serverless_execution_role_arn),
    ]

    if config.oleander_iam is not None:
        oleander = OleanderIam(
            name=name("oleander-iam"),
            config=config.oleander_iam,
            table_bucket_arn=primary.table_bucket_arn,
            emr_serverless_application_arn=primary.emr_serverless_application_arn,
            emr_serverless_execution_role_arn=primary.emr_serverless_execution_role_arn,
            job_logs_bucket_name=primary.job_logs_bucket_name,
            opts=opts,
        )
        outputs += [
            ("oleander_s3tables_access_role_arn", oleander.s3tables_access_role_arn),
            ("oleander_emr_serverless_controller_role_arn", oleander.emr_controller_role_arn),
        ]
    else:
        pulumi.log.info("OleanderIAM not configured; skipping cross-account roles")

    for output_name, value in outputs:
        pulumi.export(output_name, value)


if __name__ == "__main__":
    main()
