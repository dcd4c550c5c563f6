from dataclasses import dataclass, field


@dataclass(frozen=True, kw_only=True)
class AwsConfig:
    """AWS configuration for stackwire.

    Both profile and region are optional overrides. When not specified, deployments follow
    the standard AWS credential and region resolution chain (environment variables, shared
    config and credentials files, SSO cache, then instance or task roles).

    Synthesis never talks to AWS. These values are only handed to the Pulumi workspace
    when previewing or deploying:

    - ``profile`` is exported as ``AWS_PROFILE``
    - ``region`` is exported as ``AWS_REGION`` and set as the ``aws:region`` stack config

    Examples:
    ```python
    AwsConfig()                        # Use env vars / default profile
    AwsConfig(profile="my-sso-profile")
    AwsConfig(region="eu-west-1")      # Deploy to EU regardless of profile region
    ```
    """

    profile: str | None = None
    region: str | None = None


@dataclass(frozen=True, kw_only=True)
class StackwireAppConfig:
    """stackwire app configuration.

    Attributes:
        aws: AWS credentials and region configuration.
        environments: Allowed environment names (e.g., ["staging", "production"]).
            When empty, any environment name is accepted.
    """

    aws: AwsConfig = field(default_factory=AwsConfig)
    environments: list[str] = field(default_factory=list)

    def is_valid_environment(self, env: str) -> bool:
        return not self.environments or env in self.environments
