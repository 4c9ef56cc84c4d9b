"""
Infrastructure components for S3 Tables + EMR Serverless.

Each resource group is its own ComponentResource for clear ownership,
testability, and reuse. Use from the Pulumi entrypoint (e.g. __main__.py) with
config and output chaining:

- **S3TablesEmrServerless**: network, job buckets, S3 Tables table bucket,
  execution role and Spark application; exposes the ARNs and names the
  dependent roles are scoped to.
- **OleanderIam**: cross-account S3 Tables access and EMR controller roles;
  accepts the primary component's outputs (str or Output[str]).
- **AnalyticsNetwork** and **SecureBucket**: building blocks used by
  S3TablesEmrServerless.
"""

from components.network import AnalyticsNetwork
from components.oleander_iam import OleanderIam
from components.s3tables_emr import S3TablesEmrServerless
from components.storage import SecureBucket

__all__ = ["AnalyticsNetwork", "OleanderIam", "S3TablesEmrServerless", "SecureBucket"]
