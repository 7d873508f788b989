"""
DaVinci Terraformer

Converts exported PingOne DaVinci resources (variables, connector
instances, flows, applications and flow policies) into Terraform
configuration, with cross-resource references resolved through a
dependency graph.
"""

__version__ = "0.1.0"
