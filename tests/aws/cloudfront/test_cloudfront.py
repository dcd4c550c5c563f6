import pytest

from stackwire.aws.cloudfront import (
    CACHING_OPTIMIZED_POLICY_ID,
    DISTRIBUTION,
    ORIGIN_ACCESS_CONTROL,
    SECURITY_HEADERS_POLICY_ID,
    CdnConfig,
    CdnConfigDict,
)
from stackwire.exceptions import UnresolvedReferenceError, ValidationError
from stackwire.expressions import Attr, Format, Ref
from stackwire.synth import synthesize

from ...test_utils import assert_config_dict_matches_dataclass

TP = "test-test-"


def test_cdn_config_dict_has_same_fields_as_cdn_config():
    assert_config_dict_matches_dataclass(CdnConfig, CdnConfigDict)


@pytest.mark.parametrize(
    ("opts", "message"),
    [
        ({"origin": ""}, "must be the id of a Storage declaration"),
        ({"origin": "site", "default_root_object": "/index.html"}, "must be an object key"),
        ({"origin": "site", "price_class": "PriceClass_1"}, "option 'price_class'"),
        ({"origin": "site", "viewer_protocol_policy": "http"}, "'viewer_protocol_policy'"),
        ({"origin": "site", "spa_fallback": None}, "must be a boolean"),
    ],
)
def test_invalid_cdn_options(opts, message):
    with pytest.raises(ValidationError, match=message):
        CdnConfig(**opts)


def test_origin_is_a_structural_reference():
    assert CdnConfig(origin="site").references() == (
        Ref("site", "regional_domain_name"),
        Ref("site", "arn"),
    )


@pytest.fixture
def website(descriptor):
    descriptor.storage("site", index_document="home.html")
    descriptor.cdn("cdn", origin="site")
    return descriptor


def test_distribution_signs_requests_to_private_bucket(website):
    artifact = synthesize(website)

    oac = artifact.resource(f"{TP}cdn-oac")
    assert oac.type == ORIGIN_ACCESS_CONTROL
    assert oac.properties["origin_access_control_origin_type"] == "s3"
    assert oac.properties["signing_behavior"] == "always"

    distribution = artifact.resource(f"{TP}cdn")
    assert distribution.type == DISTRIBUTION
    assert distribution.properties["origins"] == [
        {
            "domain_name": Attr(f"{TP}site", "bucket_regional_domain_name"),
            "origin_id": "cdn-S3-Origin",
            "origin_access_control_id": Attr(f"{TP}cdn-oac", "id"),
        }
    ]
    behavior = distribution.properties["default_cache_behavior"]
    assert behavior["target_origin_id"] == "cdn-S3-Origin"
    assert behavior["viewer_protocol_policy"] == "redirect-to-https"
    assert behavior["cache_policy_id"] == CACHING_OPTIMIZED_POLICY_ID
    assert behavior["response_headers_policy_id"] == SECURITY_HEADERS_POLICY_ID
    assert distribution.properties["price_class"] == "PriceClass_100"


def test_root_object_and_spa_fallback_follow_index_document(website):
    distribution = synthesize(website).resource(f"{TP}cdn")

    assert distribution.properties["default_root_object"] == "home.html"
    assert [
        (r["error_code"], r["response_code"], r["response_page_path"])
        for r in distribution.properties["custom_error_responses"]
    ] == [(403, 200, "/home.html"), (404, 200, "/home.html")]


def test_bucket_policy_only_admits_this_distribution(website):
    artifact = synthesize(website)

    statements = artifact.resource(f"{TP}site-policy").properties["policy"].value["Statement"]
    assert [s["Sid"] for s in statements] == ["DenyInsecureTransport", "AllowCloudFrontCdn"]
    allow = statements[1]
    assert allow["Principal"] == {"Service": "cloudfront.amazonaws.com"}
    assert allow["Action"] == "s3:GetObject"
    assert allow["Resource"] == Format("{}/*", Attr(f"{TP}site", "arn"))
    assert allow["Condition"] == {"StringEquals": {"AWS:SourceArn": Attr(f"{TP}cdn", "arn")}}


def test_distribution_without_fallback_or_security_headers(descriptor):
    descriptor.storage("site")
    descriptor.cdn(
        "cdn",
        origin="site",
        default_root_object="app.html",
        spa_fallback=False,
        security_headers=False,
        price_class="PriceClass_All",
    )

    distribution = synthesize(descriptor).resource(f"{TP}cdn")

    assert distribution.properties["default_root_object"] == "app.html"
    assert "custom_error_responses" not in distribution.properties
    assert distribution.properties["default_cache_behavior"]["response_headers_policy_id"] is None
    assert distribution.properties["price_class"] == "PriceClass_All"


def test_cdn_attributes(website):
    cdn = website.get("cdn")

    synthesize(website)

    assert dict(cdn.generated_attributes) == {
        "id": Attr(f"{TP}cdn", "id"),
        "arn": Attr(f"{TP}cdn", "arn"),
        "domain_name": Attr(f"{TP}cdn", "domain_name"),
    }


def test_origin_must_be_storage(descriptor):
    descriptor.table("site", partition_key_name="id", partition_key_type="STRING")
    descriptor.cdn("cdn", origin="site")

    with pytest.raises(UnresolvedReferenceError, match="has no attribute 'regional_domain_name'"):
        synthesize(descriptor)


def test_origin_must_be_declared(descriptor):
    descriptor.cdn("cdn", origin="site")

    with pytest.raises(UnresolvedReferenceError, match="undeclared id"):
        synthesize(descriptor)
