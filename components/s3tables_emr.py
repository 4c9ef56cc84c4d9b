"""
S3 Tables + EMR Serverless: the primary resource group.

This component creates the analytics network, the job artifacts and job logs
buckets, an S3 Tables table bucket, the EMR Serverless execution role, and a
Spark application bound to the chosen subnet tier. The table bucket ARN is
derived from region, account and name (``table_bucket_arn``) rather than read
back from the provider, so policies referencing it are known at plan time.

Outputs (``table_bucket_arn``, ``emr_serverless_application_arn``,
``emr_serverless_execution_role_arn``, ``job_logs_bucket_name``, ...) are what
the Oleander IAM component needs to scope its cross-account roles.
"""

import json

import pulumi
import pulumi_aws as aws

from components._helpers import (
    emr_log_uri,
    initial_capacity_args,
    table_bucket_arn,
)
from components._policies import (
    EMR_SERVERLESS_SERVICE,
    execution_role_policy,
    service_trust_policy,
)
from components.network import ALLOW_ALL_EGRESS, AnalyticsNetwork
from components.storage import SecureBucket
from stack_config import AwsEnvConfig, S3TablesEmrServerlessConfig

ID: str = "s3tables:emr:S3TablesEmrServerless"

DEFAULT_RELEASE_LABEL = "emr-7.12.0"
APPLICATION_TYPE = "spark"


def _initial_capacities(
    entries: list[dict] | None,
) -> list[aws.emrserverless.ApplicationInitialCapacityArgs] | None:
    if entries is None:
        return None
    return [
        aws.emrserverless.ApplicationInitialCapacityArgs(
            initial_capacity_type=entry["initial_capacity_type"],
            initial_capacity_config=aws.emrserverless.ApplicationInitialCapacityInitialCapacityConfigArgs(
                worker_count=entry["initial_capacity_config"]["worker_count"],
                worker_configuration=aws.emrserverless.ApplicationInitialCapacityInitialCapacityConfigWorkerConfigurationArgs(
                    **entry["initial_capacity_config"]["worker_configuration"],
                ),
            ),
        )
        for entry in entries
    ]


class S3TablesEmrServerless(pulumi.ComponentResource):
    """
    Network, buckets, S3 Tables table bucket, execution role and EMR application.

    Resources: AnalyticsNetwork, SecureBucket x 2, s3tables.TableBucket,
    SecurityGroup, iam.Role + RolePolicy, emrserverless.Application.
    """

    def __init__(
        self,
        name: str,
        config: S3TablesEmrServerlessConfig,
        aws_env: AwsEnvConfig,
        opts: pulumi.ResourceOptions | None = None,
    ):
        """
        Create the primary resource group.

        Args:
            name: Pulumi resource name prefix.
            config: Validated VPC, S3 Tables and EMR Serverless settings.
            aws_env: Account and region, used to derive ARNs and endpoint names.
            opts: Options for the component (e.g. provider).

        Raises:
            InitialCapacityError: Initial capacity is enabled but not sized.
                Raised before any resource is registered.

        Outputs (set on self, registered for the component):
            table_bucket_name, table_bucket_arn,
            emr_serverless_application_id, emr_serverless_application_arn,
            job_artifacts_bucket_name, job_logs_bucket_name,
            emr_serverless_execution_role_arn.
        """
        emr = config.emr_serverless
        initial_capacities = _initial_capacities(initial_capacity_args(emr))

        super().__init__(ID, name, None, opts)

        child_opts = pulumi.ResourceOptions(parent=self)

        self.network = AnalyticsNetwork(
            name=f"{name}-net",
            config=config.vpc,
            region=aws_env.region,
            opts=child_opts,
        )
        subnet_ids = self.network.subnet_ids_for(emr.use_private_subnets)
        pulumi.log.info(
            f"EMR Serverless application {emr.application_name} uses "
            f"{'private' if emr.use_private_subnets else 'public'} subnets",
            resource=self,
        )

        emr_security_group = aws.ec2.SecurityGroup(
            resource_name=f"{name}-emr-sg",
            vpc_id=self.network.vpc_id,
            description="Security group for EMR Serverless application",
            egress=[ALLOW_ALL_EGRESS],
            opts=child_opts,
        )

        self.artifacts = SecureBucket(
            name=f"{name}-job-artifacts",
            bucket_name=emr.job_artifacts_bucket_name,
            opts=child_opts,
        )
        self.logs = SecureBucket(
            name=f"{name}-job-logs",
            bucket_name=emr.job_logs_bucket_name,
            opts=child_opts,
        )

        table_bucket_name = config.s3_tables.table_bucket_name
        self.table_bucket = aws.s3tables.TableBucket(
            resource_name=f"{name}-table-bucket",
            name=table_bucket_name,
            opts=child_opts,
        )
        tables_arn = table_bucket_arn(aws_env.region, aws_env.account, table_bucket_name)

        execution_role = aws.iam.Role(
            resource_name=f"{name}-execution-role",
            name=emr.execution_role_name,
            assume_role_policy=json.dumps(service_trust_policy(EMR_SERVERLESS_SERVICE)),
            opts=child_opts,
        )
        self.execution_policy = aws.iam.RolePolicy(
            resource_name=f"{name}-execution-policy",
            role=execution_role.id,
            policy=pulumi.Output.all(self.artifacts.arn, self.logs.arn).apply(
                lambda arns: json.dumps(execution_role_policy(tables_arn, *arns))
            ),
            opts=child_opts,
        )

        # Jobs read and write tables as soon as the application starts.
        application_opts = pulumi.ResourceOptions(
            parent=self,
            depends_on=[self.table_bucket],
        )
        self.application = aws.emrserverless.Application(
            resource_name=f"{name}-application",
            name=emr.application_name,
            release_label=emr.release_label or DEFAULT_RELEASE_LABEL,
            type=APPLICATION_TYPE,
            network_configuration=aws.emrserverless.ApplicationNetworkConfigurationArgs(
                subnet_ids=subnet_ids,
                security_group_ids=[emr_security_group.id],
            ),
            maximum_capacity=aws.emrserverless.ApplicationMaximumCapacityArgs(
                **emr.maximum_capacity.as_args(),
            ),
            initial_capacities=initial_capacities,
            monitoring_configuration=aws.emrserverless.ApplicationMonitoringConfigurationArgs(
                s3_monitoring_configuration=aws.emrserverless.ApplicationMonitoringConfigurationS3MonitoringConfigurationArgs(
                    log_uri=self.logs.bucket_name.apply(emr_log_uri),
                ),
            ),
            opts=application_opts,
        )

        self.table_bucket_name: str = table_bucket_name
        self.table_bucket_arn: str = tables_arn
        self.emr_serverless_application_id: pulumi.Output[str] = self.application.id
        self.emr_serverless_application_arn: pulumi.Output[str] = self.application.arn
        self.job_artifacts_bucket_name: pulumi.Output[str] = self.artifacts.bucket_name
        self.job_logs_bucket_name: pulumi.Output[str] = self.logs.bucket_name
        self.emr_serverless_execution_role_arn: pulumi.Output[str] = execution_role.arn
        self.register_outputs(
            {
                "table_bucket_name": self.table_bucket_name,
                "table_bucket_arn": self.table_bucket_arn,
                "emr_serverless_application_id": self.emr_serverless_application_id,
                "emr_serverless_application_arn": self.emr_serverless_application_arn,
                "job_artifacts_bucket_name": self.job_artifacts_bucket_name,
                "job_logs_bucket_name": self.job_logs_bucket_name,
                "emr_serverless_execution_role_arn": self.emr_serverless_execution_role_arn,
            }
        )
