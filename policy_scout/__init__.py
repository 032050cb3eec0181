"""policy-scout: shows which Service Control Policies reach your AWS accounts."""

__version__ = "0.1.0"
