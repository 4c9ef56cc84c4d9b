"""
Cross-account roles for the Oleander operator.

Two roles, both assumable only by the Oleander account and only when the
caller presents the configured organization id as ``sts:ExternalId``:

- **S3 Tables access**: full ``s3tables:*`` on the table bucket and its tables.
- **EMR controller**: start and read job runs on the application, pass the
  execution role to EMR Serverless, and read job logs.

Every ARN comes from the S3 Tables + EMR component, so the grants never reach
beyond the resources this program created.
"""

import json

import pulumi
import pulumi_aws as aws

from components._helpers import s3_bucket_arn
from components._policies import (
    cross_account_trust_policy,
    emr_controller_role_policy,
    s3tables_access_role_policy,
)
from stack_config import OleanderIamConfig

ID: str = "s3tables:iam:OleanderIam"

# Oleander's AWS account; OleanderIAM.trustedAccountId overrides it.
OLEANDER_ACCOUNT_ID = "579897423473"


class OleanderIam(pulumi.ComponentResource):
    """
    Two IAM roles trusted by the Oleander account with ExternalId.

    Resources: iam.Role + RolePolicy for S3 Tables access, iam.Role +
    RolePolicy for the EMR Serverless controller.
    """

    def __init__(
        self,
        name: str,
        config: OleanderIamConfig,
        table_bucket_arn: pulumi.Input[str],
        emr_serverless_application_arn: pulumi.Input[str],
        emr_serverless_execution_role_arn: pulumi.Input[str],
        job_logs_bucket_name: pulumi.Input[str],
        opts: pulumi.ResourceOptions | None = None,
    ):
        """
        Create both roles and their inline policies.

        Args:
            name: Pulumi resource name prefix.
            config: Organization id, role names, optional trusted account id.
            table_bucket_arn: S3 Tables bucket the access role may manage.
            emr_serverless_application_arn: Application the controller may run jobs on.
            emr_serverless_execution_role_arn: Role the controller may pass to EMR.
            job_logs_bucket_name: Bucket the controller may read logs from.
            opts: Options for the component (e.g. provider).

        Outputs (set on self, registered for the component):
            s3tables_access_role_arn: ARN of the S3 Tables access role.
            emr_controller_role_arn: ARN of the EMR controller role.
        """
        super().__init__(ID, name, None, opts)

        child_opts = pulumi.ResourceOptions(parent=self)

        account_id = config.trusted_account_id or OLEANDER_ACCOUNT_ID
        trust_policy = json.dumps(
            cross_account_trust_policy(account_id, config.organization_id)
        )

        self.s3tables_access_role = aws.iam.Role(
            resource_name=f"{name}-s3tables-access",
            name=config.role_names.s3tables_access_role,
            assume_role_policy=trust_policy,
            opts=child_opts,
        )
        self.s3tables_access_policy = aws.iam.RolePolicy(
            resource_name=f"{name}-s3tables-access-policy",
            role=self.s3tables_access_role.id,
            policy=pulumi.Output.from_input(table_bucket_arn).apply(
                lambda arn: json.dumps(s3tables_access_role_policy(arn))
            ),
            opts=child_opts,
        )

        self.emr_controller_role = aws.iam.Role(
            resource_name=f"{name}-emr-controller",
            name=config.role_names.emr_controller_role,
            assume_role_policy=trust_policy,
            opts=child_opts,
        )
        self.emr_controller_policy = aws.iam.RolePolicy(
            resource_name=f"{name}-emr-controller-policy",
            role=self.emr_controller_role.id,
            policy=pulumi.Output.all(
                emr_serverless_application_arn,
                emr_serverless_execution_role_arn,
                job_logs_bucket_name,
            ).apply(
                lambda args: json.dumps(
                    emr_controller_role_policy(args[0], args[1], s3_bucket_arn(args[2]))
                )
            ),
            opts=child_opts,
        )

        self.s3tables_access_role_arn: pulumi.Output[str] = self.s3tables_access_role.arn
        self.emr_controller_role_arn: pulumi.Output[str] = self.emr_controller_role.arn
        self.register_outputs(
            {
                "s3tables_access_role_arn": self.s3tables_access_role_arn,
                "emr_controller_role_arn": self.emr_controller_role_arn,
            }
        )
