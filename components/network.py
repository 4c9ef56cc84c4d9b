"""
AWS network for EMR Serverless: VPC, public/private subnets, NAT, endpoints.

The subnet layout is computed up front by ``plan_subnets`` (public tier then
private tier, one subnet per AZ), so CIDRs are known at plan time and stable
across runs. Private subnets reach the internet through NAT gateways placed
in the first public subnets. S3 is reachable through a gateway endpoint on
every route table, and S3 Tables through an interface endpoint in the
private subnets that accepts HTTPS from inside the VPC only.
"""

import pulumi
import pulumi_aws as aws

from components._helpers import (
    HTTPS_PORT,
    PRIVATE_TIER,
    PUBLIC_TIER,
    nat_gateway_count,
    plan_subnets,
    s3_endpoint_service,
    s3tables_endpoint_service,
)
from stack_config import VpcConfig

ID: str = "s3tables:network:AnalyticsNetwork"

ALLOW_ALL_EGRESS = aws.ec2.SecurityGroupEgressArgs(
    protocol="-1",
    from_port=0,
    to_port=0,
    cidr_blocks=["0.0.0.0/0"],
)


def _pick_zone(names: list[str], index: int) -> str:
    if index >= len(names):
        raise ValueError(
            f"azCount needs at least {index + 1} availability zones, region has {len(names)}"
        )
    return names[index]


class AnalyticsNetwork(pulumi.ComponentResource):
    """
    VPC with one public and one private subnet per AZ plus S3/S3 Tables endpoints.

    Resources: Vpc, InternetGateway, Subnet x (2 * az_count), RouteTable(s),
    Eip + NatGateway (per NAT), VpcEndpoint (S3 gateway, S3 Tables interface),
    SecurityGroup for the interface endpoint.
    """

    def __init__(
        self,
        name: str,
        config: VpcConfig,
        region: str,
        opts: pulumi.ResourceOptions | None = None,
    ):
        """
        Create the VPC and everything attached to it.

        Args:
            name: Pulumi resource name prefix.
            config: CIDR, AZ count, NAT count and per-tier subnet masks.
            region: AWS region, used for endpoint service names.
            opts: Options for the component (e.g. parent, provider).

        Outputs (set on self, registered for the component):
            vpc_id: The VPC id.
            vpc_cidr_block: The VPC CIDR.
            public_subnet_ids: One id per AZ.
            private_subnet_ids: One id per AZ.
        """
        # Plan before registering so a bad layout fails without side effects.
        plans = plan_subnets(
            config.cidr,
            config.az_count,
            public_mask=config.public_subnet_cidr_mask,
            private_mask=config.private_subnet_cidr_mask,
        )

        super().__init__(ID, name, None, opts)

        child_opts = pulumi.ResourceOptions(parent=self)

        self.vpc = aws.ec2.Vpc(
            resource_name=f"{name}-vpc",
            cidr_block=config.cidr,
            enable_dns_hostnames=True,
            enable_dns_support=True,
            tags={"Name": f"{name}-vpc"},
            opts=child_opts,
        )

        zones = aws.get_availability_zones_output(
            state="available",
            opts=pulumi.InvokeOptions(parent=self),
        )

        self.public_subnets: list[aws.ec2.Subnet] = []
        self.private_subnets: list[aws.ec2.Subnet] = []
        for plan in plans:
            subnet = aws.ec2.Subnet(
                resource_name=f"{name}-{plan.name}",
                vpc_id=self.vpc.id,
                cidr_block=plan.cidr,
                availability_zone=zones.names.apply(
                    lambda names, i=plan.az_index: _pick_zone(names, i)
                ),
                map_public_ip_on_launch=plan.tier == PUBLIC_TIER,
                tags={"Name": f"{name}-{plan.name}", "Tier": plan.tier},
                opts=child_opts,
            )
            if plan.tier == PUBLIC_TIER:
                self.public_subnets.append(subnet)
            else:
                self.private_subnets.append(subnet)

        igw = aws.ec2.InternetGateway(
            resource_name=f"{name}-igw",
            vpc_id=self.vpc.id,
            tags={"Name": f"{name}-igw"},
            opts=child_opts,
        )
        self.public_route_table = aws.ec2.RouteTable(
            resource_name=f"{name}-{PUBLIC_TIER}-rt",
            vpc_id=self.vpc.id,
            routes=[
                aws.ec2.RouteTableRouteArgs(
                    cidr_block="0.0.0.0/0",
                    gateway_id=igw.id,
                )
            ],
            tags={"Name": f"{name}-{PUBLIC_TIER}-rt"},
            opts=child_opts,
        )
        for i, subnet in enumerate(self.public_subnets):
            aws.ec2.RouteTableAssociation(
                resource_name=f"{name}-{PUBLIC_TIER}-rta-{i + 1}",
                subnet_id=subnet.id,
                route_table_id=self.public_route_table.id,
                opts=child_opts,
            )

        # One NAT per public subnet at most; private AZs share them round-robin.
        self.nat_gateways: list[aws.ec2.NatGateway] = []
        for i in range(nat_gateway_count(config.nat_gateways, config.az_count)):
            eip = aws.ec2.Eip(
                resource_name=f"{name}-nat-eip-{i + 1}",
                domain="vpc",
                tags={"Name": f"{name}-nat-eip-{i + 1}"},
                opts=child_opts,
            )
            nat_opts = pulumi.ResourceOptions(parent=self, depends_on=[igw])
            self.nat_gateways.append(
                aws.ec2.NatGateway(
                    resource_name=f"{name}-nat-{i + 1}",
                    allocation_id=eip.id,
                    subnet_id=self.public_subnets[i].id,
                    tags={"Name": f"{name}-nat-{i + 1}"},
                    opts=nat_opts,
                )
            )

        self.private_route_tables: list[aws.ec2.RouteTable] = []
        for i, subnet in enumerate(self.private_subnets):
            routes = []
            if self.nat_gateways:
                nat = self.nat_gateways[i % len(self.nat_gateways)]
                routes.append(
                    aws.ec2.RouteTableRouteArgs(
                        cidr_block="0.0.0.0/0",
                        nat_gateway_id=nat.id,
                    )
                )
            private_route_table = aws.ec2.RouteTable(
                resource_name=f"{name}-{PRIVATE_TIER}-rt-{i + 1}",
                vpc_id=self.vpc.id,
                routes=routes,
                tags={"Name": f"{name}-{PRIVATE_TIER}-rt-{i + 1}"},
                opts=child_opts,
            )
            aws.ec2.RouteTableAssociation(
                resource_name=f"{name}-{PRIVATE_TIER}-rta-{i + 1}",
                subnet_id=subnet.id,
                route_table_id=private_route_table.id,
                opts=child_opts,
            )
            self.private_route_tables.append(private_route_table)

        route_table_ids = [
            rt.id for rt in [self.public_route_table, *self.private_route_tables]
        ]
        self.s3_gateway_endpoint = aws.ec2.VpcEndpoint(
            resource_name=f"{name}-s3-gateway",
            vpc_id=self.vpc.id,
            service_name=s3_endpoint_service(region),
            vpc_endpoint_type="Gateway",
            route_table_ids=route_table_ids,
            tags={"Name": f"{name}-s3-gateway"},
            opts=child_opts,
        )

        self.s3tables_endpoint_security_group = aws.ec2.SecurityGroup(
            resource_name=f"{name}-s3tables-endpoint-sg",
            vpc_id=self.vpc.id,
            description="Security group for S3 Tables interface endpoint",
            ingress=[
                aws.ec2.SecurityGroupIngressArgs(
                    description="Allow HTTPS from VPC",
                    protocol="tcp",
                    from_port=HTTPS_PORT,
                    to_port=HTTPS_PORT,
                    cidr_blocks=[self.vpc.cidr_block],
                )
            ],
            egress=[ALLOW_ALL_EGRESS],
            opts=child_opts,
        )

        self.s3tables_endpoint = aws.ec2.VpcEndpoint(
            resource_name=f"{name}-s3tables-interface",
            vpc_id=self.vpc.id,
            service_name=s3tables_endpoint_service(region),
            vpc_endpoint_type="Interface",
            subnet_ids=[s.id for s in self.private_subnets],
            security_group_ids=[self.s3tables_endpoint_security_group.id],
            private_dns_enabled=True,
            tags={"Name": f"{name}-s3tables-interface"},
            opts=child_opts,
        )

        self.vpc_id: pulumi.Output[str] = self.vpc.id
        self.vpc_cidr_block: pulumi.Output[str] = self.vpc.cidr_block
        self.public_subnet_ids: list[pulumi.Output[str]] = [
            s.id for s in self.public_subnets
        ]
        self.private_subnet_ids: list[pulumi.Output[str]] = [
            s.id for s in self.private_subnets
        ]
        self.register_outputs(
            {
                "vpc_id": self.vpc_id,
                "vpc_cidr_block": self.vpc_cidr_block,
                "public_subnet_ids": self.public_subnet_ids,
                "private_subnet_ids": self.private_subnet_ids,
            }
        )

    def subnet_ids_for(self, use_private_subnets: bool) -> list[pulumi.Output[str]]:
        """Private (NAT egress) subnet ids when asked, else public ones."""
        return self.private_subnet_ids if use_private_subnets else self.public_subnet_ids
