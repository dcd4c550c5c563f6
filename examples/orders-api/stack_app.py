from stackwire.app import StackwireApp
from stackwire.config import AwsConfig, StackwireAppConfig
from stackwire.descriptor import Descriptor
from stackwire.expressions import Ref
from stackwire.routes import Authorization

app = StackwireApp("orders-api")


@app.config
def configuration(env: str) -> StackwireAppConfig:
    return StackwireAppConfig(
        aws=AwsConfig(
            # region="us-east-1",        # Uncomment to override AWS CLI/env var region
            # profile="your-profile",    # Uncomment to use specific AWS profile
        ),
        environments=["staging", "prod"],
    )


@app.assemble
def assemble(descriptor: Descriptor) -> None:
    prod = descriptor.context.env == "prod"
    retention = "retain" if prod else "destroy"

    descriptor.storage("uploads", retention=retention, versioned=prod)
    descriptor.table(
        "orders",
        partition_key_name="customer",
        partition_key_type="STRING",
        sort_key_name="created",
        sort_key_type="NUMBER",
        point_in_time_recovery=prod,
        retention=retention,
    )
    descriptor.log_group("logs", retention_days=30 if prod else 7, retention=retention)

    common = {"runtime": "python3.12", "code_location": "functions", "log_group": "logs"}
    table_name = Ref("orders", "name")
    descriptor.function("authorizer", handler="auth.handler", **common)
    descriptor.function(
        "orders-fn",
        handler="orders.handler",
        env_vars={"TABLE_NAME": table_name, "BUCKET": Ref("uploads", "name")},
        tracing_enabled=True,
        **common,
    )
    descriptor.function(
        "reports-fn", handler="reports.handler", env_vars={"TABLE_NAME": table_name}, **common
    )

    for function_id in ("authorizer", "orders-fn", "reports-fn"):
        descriptor.grant(function_id, "logs", "write")
    descriptor.grant("orders-fn", "orders", ["read", "write"])
    descriptor.grant("orders-fn", "uploads", ["read", "write"])
    descriptor.grant("reports-fn", "orders", "read")

    descriptor.api(
        "api",
        stage_name=descriptor.context.env,
        cors={"allow_origins": ["https://orders.example.com", "https://admin.example.com"]},
    )
    customer = Authorization.custom("authorizer")
    descriptor.bind("api", "/orders", "GET", "orders-fn", authorization=customer)
    descriptor.bind("api", "/orders", "POST", "orders-fn", authorization=customer)
    descriptor.bind("api", "/orders/{created}", "GET", "orders-fn", authorization=customer)
    descriptor.bind("api", "/reports", "GET", "reports-fn", authorization=Authorization.api_key())

    descriptor.output("apiUrl", Ref("api", "url"), "Orders API endpoint")
    descriptor.output("ordersTable", table_name)
