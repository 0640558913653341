"""Objects generated for a DataPlane."""

from gateway_operator import consts
from gateway_operator.resources.deployment import add_missing_env
from gateway_operator.resources.templates import render_resource
from gateway_operator.services.certificates import encode, issue_certificate

DATAPLANE_DEFAULT_ENV = [
    {"name": "KONG_DATABASE", "value": "off"},
    {
        "name": "KONG_PROXY_LISTEN",
        "value": (
            f"0.0.0.0:{consts.DATAPLANE_PROXY_TARGET_PORT} reuseport backlog=16384, "
            f"0.0.0.0:{consts.DATAPLANE_PROXY_SSL_TARGET_PORT} http2 ssl reuseport backlog=16384"
        ),
    },
    {
        "name": "KONG_ADMIN_LISTEN",
        "value": f"0.0.0.0:{consts.DATAPLANE_ADMIN_API_PORT} http2 ssl reuseport backlog=16384",
    },
    {"name": "KONG_STATUS_LISTEN", "value": f"0.0.0.0:{consts.DATAPLANE_STATUS_PORT}"},
    {
        "name": "KONG_ADMIN_SSL_CERT",
        "value": f"{consts.CLUSTER_CERTIFICATE_MOUNT_PATH}/{consts.TLS_CERT_FILENAME}",
    },
    {
        "name": "KONG_ADMIN_SSL_CERT_KEY",
        "value": f"{consts.CLUSTER_CERTIFICATE_MOUNT_PATH}/{consts.TLS_KEY_FILENAME}",
    },
    {"name": "KONG_NGINX_WORKER_PROCESSES", "value": "2"},
    {"name": "KONG_PROXY_ACCESS_LOG", "value": "/dev/stdout"},
    {"name": "KONG_ADMIN_ACCESS_LOG", "value": "/dev/stdout"},
    {"name": "KONG_PROXY_ERROR_LOG", "value": "/dev/stderr"},
    {"name": "KONG_ADMIN_ERROR_LOG", "value": "/dev/stderr"},
]


def dataplane_image(spec):
    image = spec.get("containerImage") or consts.DEFAULT_DATAPLANE_IMAGE
    tag = spec.get("version") or consts.DEFAULT_DATAPLANE_TAG
    return f"{image}:{tag}"


def set_dataplane_defaults(options):
    """Fill in the default proxy environment on a DataPlane spec dict.

    Returns:
        bool: True if the spec changed
    """
    env = options.get("env") or []
    changed = add_missing_env(env, DATAPLANE_DEFAULT_ENV)
    options["env"] = env
    return changed


def generate_dataplane_service(dataplane):
    return render_resource(
        "dataplane-service.yaml.j2",
        name=dataplane["metadata"]["name"],
        namespace=dataplane["metadata"]["namespace"],
        proxy_port=consts.DATAPLANE_PROXY_PORT,
        proxy_target_port=consts.DATAPLANE_PROXY_TARGET_PORT,
        proxy_ssl_port=consts.DATAPLANE_PROXY_SSL_PORT,
        proxy_ssl_target_port=consts.DATAPLANE_PROXY_SSL_TARGET_PORT,
        admin_port=consts.DATAPLANE_ADMIN_API_PORT,
    )


def certificate_dns_name(service_name, namespace):
    return f"{service_name}.{namespace}.svc"


def generate_dataplane_certificate_secret(dataplane, service_name, ca):
    """TLS secret for the DataPlane service, issued by the cluster CA."""
    namespace = dataplane["metadata"]["namespace"]
    certificate_pem, key_pem = issue_certificate(
        ca, [certificate_dns_name(service_name, namespace)]
    )
    return render_resource(
        "dataplane-certificate.yaml.j2",
        name=dataplane["metadata"]["name"],
        namespace=namespace,
        tls_crt=encode(certificate_pem),
        tls_key=encode(key_pem),
        ca_crt=encode(ca.certificate_pem),
    )


def generate_dataplane_deployment(dataplane, certificate_secret):
    spec = dataplane.get("spec") or {}
    return render_resource(
        "dataplane-deployment.yaml.j2",
        name=dataplane["metadata"]["name"],
        namespace=dataplane["metadata"]["namespace"],
        image=dataplane_image(spec),
        replicas=spec.get("replicas"),
        env=spec.get("env") or [],
        env_from=spec.get("envFrom") or [],
        proxy_target_port=consts.DATAPLANE_PROXY_TARGET_PORT,
        proxy_ssl_target_port=consts.DATAPLANE_PROXY_SSL_TARGET_PORT,
        admin_port=consts.DATAPLANE_ADMIN_API_PORT,
        status_port=consts.DATAPLANE_STATUS_PORT,
        certificate_volume=consts.CLUSTER_CERTIFICATE_VOLUME,
        certificate_mount_path=consts.CLUSTER_CERTIFICATE_MOUNT_PATH,
        certificate_secret=certificate_secret,
    )
