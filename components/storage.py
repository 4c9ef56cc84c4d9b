"""
Locked-down S3 bucket: Block Public Access, SSE-S3, TLS-only policy.

Both EMR buckets (job artifacts and job logs) use this component so they
share one definition of "private". The bucket name is taken verbatim from
configuration; S3 names are global, so the caller owns uniqueness.
"""

import json

import pulumi
import pulumi_aws as aws

from components._policies import deny_insecure_transport_policy

ID: str = "s3tables:storage:SecureBucket"

# Always applied. Used by tests and callers to assert on secure defaults.
S3_BLOCK_PUBLIC_ACCESS: dict[str, bool] = {
    "block_public_acls": True,
    "block_public_policy": True,
    "ignore_public_acls": True,
    "restrict_public_buckets": True,
}

SSE_ALGORITHM = "AES256"


class SecureBucket(pulumi.ComponentResource):
    """
    S3 bucket that cannot be made public and only accepts HTTPS requests.

    Resources: Bucket, BucketPublicAccessBlock,
    BucketServerSideEncryptionConfiguration, BucketPolicy.
    """

    def __init__(
        self,
        name: str,
        bucket_name: str,
        opts: pulumi.ResourceOptions | None = None,
    ):
        """
        Create the bucket and its guard rails.

        Args:
            name: Pulumi resource name prefix for the bucket and its children.
            bucket_name: Physical S3 bucket name.
            opts: Options for the component (e.g. parent).

        Outputs (set on self, registered for the component):
            bucket_name: Physical bucket name.
            arn: Bucket ARN.
        """
        super().__init__(ID, name, None, opts)

        child_opts = pulumi.ResourceOptions(parent=self)

        self.bucket = aws.s3.Bucket(
            resource_name=name,
            bucket=bucket_name,
            opts=child_opts,
        )

        self.access_block = aws.s3.BucketPublicAccessBlock(
            resource_name=f"{name}-block-public",
            bucket=self.bucket.id,
            opts=child_opts,
            **S3_BLOCK_PUBLIC_ACCESS,
        )

        default_encryption = aws.s3.BucketServerSideEncryptionConfigurationRuleApplyServerSideEncryptionByDefaultArgs(
            sse_algorithm=SSE_ALGORITHM,
        )
        self.encryption = aws.s3.BucketServerSideEncryptionConfiguration(
            resource_name=f"{name}-sse",
            bucket=self.bucket.id,
            rules=[
                aws.s3.BucketServerSideEncryptionConfigurationRuleArgs(
                    apply_server_side_encryption_by_default=default_encryption,
                )
            ],
            opts=child_opts,
        )

        # Concurrent access-block and policy writes on one bucket conflict.
        policy_opts = pulumi.ResourceOptions(
            parent=self,
            depends_on=[self.access_block],
        )
        self.policy = aws.s3.BucketPolicy(
            resource_name=f"{name}-tls-only",
            bucket=self.bucket.id,
            policy=self.bucket.arn.apply(
                lambda arn: json.dumps(deny_insecure_transport_policy(arn))
            ),
            opts=policy_opts,
        )

        self.bucket_name: pulumi.Output[str] = self.bucket.bucket
        self.arn: pulumi.Output[str] = self.bucket.arn
        self.register_outputs(
            {
                "bucket_name": self.bucket_name,
                "arn": self.arn,
            }
        )
