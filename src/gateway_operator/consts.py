"""Constants shared by the gateway operator controllers."""

OPERATOR_GROUP = "gateway-operator.io"
OPERATOR_VERSION = "v1alpha1"
GATEWAY_API_GROUP = "gateway.networking.k8s.io"
GATEWAY_API_VERSION = "v1alpha2"

DEFAULT_CONTROLLER_NAME = "gateway-operator.io/gateway-operator"

# Provenance label carried by every owned child
OPERATOR_MANAGED_BY_LABEL = "gateway-operator.io/managed-by"
GATEWAY_MANAGED_LABEL_VALUE = "gateway"
DATAPLANE_MANAGED_LABEL_VALUE = "dataplane"
CONTROLPLANE_MANAGED_LABEL_VALUE = "controlplane"

# Condition types
CONDITION_TYPE_SCHEDULED = "Scheduled"
CONDITION_TYPE_READY = "Ready"
CONDITION_TYPE_PROVISIONED = "Provisioned"

# Condition reasons
REASON_SCHEDULED = "Scheduled"
REASON_READY = "Ready"
REASON_PENDING = "Pending"
REASON_PODS_NOT_READY = "PodsNotReady"
REASON_PODS_READY = "PodsReady"
REASON_VALIDATION_FAILED = "ValidationFailed"
REASON_NO_DATAPLANE = "NoDataplane"

CONDITION_TRUE = "True"
CONDITION_FALSE = "False"
CONDITION_UNKNOWN = "Unknown"

# Images
DEFAULT_DATAPLANE_IMAGE = "kong"
DEFAULT_DATAPLANE_TAG = "3.0"
DEFAULT_CONTROLPLANE_IMAGE = "kong/kubernetes-ingress-controller"
DEFAULT_CONTROLPLANE_TAG = "2.7"

# DataPlane ports
DATAPLANE_PROXY_PORT = 80
DATAPLANE_PROXY_TARGET_PORT = 8000
DATAPLANE_PROXY_SSL_PORT = 443
DATAPLANE_PROXY_SSL_TARGET_PORT = 8443
DATAPLANE_ADMIN_API_PORT = 8444
DATAPLANE_STATUS_PORT = 8100

# TLS secret volume of the DataPlane workload
CLUSTER_CERTIFICATE_VOLUME = "cluster-certificate"
CLUSTER_CERTIFICATE_MOUNT_PATH = "/var/cluster-certificate"

# ControlPlane env entries that address the DataPlane
ENV_PUBLISH_SERVICE = "CONTROLLER_PUBLISH_SERVICE"
ENV_KONG_ADMIN_URL = "CONTROLLER_KONG_ADMIN_URL"
ENV_KONG_DATABASE = "KONG_DATABASE"

# Desired replica count of a ControlPlane deployment while no DataPlane is set
NUM_REPLICAS_WHEN_NO_DATAPLANE = 0

# Webhook certificate files
CA_CERT_FILENAME = "ca.crt"
TLS_CERT_FILENAME = "tls.crt"
TLS_KEY_FILENAME = "tls.key"
