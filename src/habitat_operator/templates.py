"""Kubernetes resource templates."""

from kubernetes import client

from . import crd
from .naming import config_map_name, workload_name


def _pod_labels(sg):
    return {**crd.HABITAT_LABEL, crd.SERVICE_GROUP_LABEL: sg.name}


def create_deployment_manifest(sg, namespace):
    """Create the Deployment manifest for a validated ServiceGroup."""
    labels = _pod_labels(sg)

    return client.V1Deployment(
        api_version=crd.WORKLOAD_API_VERSION,
        kind=crd.WORKLOAD_KIND,
        metadata=client.V1ObjectMeta(
            name=workload_name(sg),
            namespace=namespace,
        ),
        spec=client.V1DeploymentSpec(
            replicas=int(sg.count),
            selector=client.V1LabelSelector(match_labels=labels),
            template=client.V1PodTemplateSpec(
                metadata=client.V1ObjectMeta(labels=labels),
                spec=client.V1PodSpec(
                    containers=[
                        client.V1Container(
                            name=crd.CONTAINER_NAME,
                            image=sg.image,
                            volume_mounts=[
                                client.V1VolumeMount(
                                    name=crd.CONFIG_VOLUME_NAME,
                                    mount_path=crd.CONFIG_MOUNT_PATH,
                                    read_only=True,
                                )
                            ],
                        )
                    ],
                    # The peer watch file is the only key projected into the pod
                    volumes=[
                        client.V1Volume(
                            name=crd.CONFIG_VOLUME_NAME,
                            config_map=client.V1ConfigMapVolumeSource(
                                name=config_map_name(sg),
                                items=[
                                    client.V1KeyToPath(
                                        key=crd.PEER_WATCH_FILE_KEY,
                                        path=crd.PEER_WATCH_FILE_KEY,
                                    )
                                ],
                            ),
                        )
                    ],
                ),
            ),
        ),
    )


def create_owner_reference(workload):
    """Owner reference pointing at a created Deployment.

    ``workload`` is the identity returned by the cluster, so ``uid`` is set.
    """
    return client.V1OwnerReference(
        api_version=crd.WORKLOAD_API_VERSION,
        kind=crd.WORKLOAD_KIND,
        name=workload.name,
        uid=workload.uid,
    )


def create_config_map_manifest(sg, namespace, owner_refs=None):
    """Create the peer watch file ConfigMap manifest with optional owner references."""
    return client.V1ConfigMap(
        api_version="v1",
        kind="ConfigMap",
        metadata=client.V1ObjectMeta(
            name=config_map_name(sg),
            namespace=namespace,
            owner_references=owner_refs if owner_refs else None,
        ),
        # Empty until pods get IPs; filled in outside this operator.
        data={crd.PEER_WATCH_FILE_KEY: ""},
    )
