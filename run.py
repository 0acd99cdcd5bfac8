#!/usr/bin/env python3
"""
Pod Resizer - Entry Point

Changes the cpu/memory limits of a running pod by recreating it, while its
ReplicationController or ReplicaSet is kept from racing the replacement.

Usage:
    python run.py --pod-name POD [--namespace NAMESPACE] [--cpu-limit MILLICORES] [--mem-limit MIB]
"""

import argparse
import logging
import sys
import time

from kubernetes import client, config

from podresize.capacity import requested_limits
from podresize.config import DEFAULT_HEALTH_CHECK_DELAY_SECONDS, DEFAULT_NONE_EXIST_SCHEDULER_NAME, ResizeConfig
from podresize.errors import ResizeError
from podresize.health import verify_running
from podresize.resizer import PodResizer
from podresize.utils import print_pod_resources

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Pod Resizer - Recreate a pod with new resource limits"
    )
    parser.add_argument(
        "--master-url",
        default="",
        help="Kubernetes API server URL"
    )
    parser.add_argument(
        "--kubeconfig",
        default="",
        help="Absolute path to the kubeconfig file"
    )
    parser.add_argument(
        "--in-cluster",
        action="store_true",
        help="Use in-cluster config (for running inside Kubernetes)"
    )
    parser.add_argument(
        "--namespace", "-n",
        default="default",
        help="Namespace of the pod (default: default)"
    )
    parser.add_argument(
        "--pod-name",
        required=True,
        help="Name of the pod to resize"
    )
    parser.add_argument(
        "--node-name",
        default="",
        help="Node to bind the new pod to (default: the pod's current node)"
    )
    parser.add_argument(
        "--cpu-limit",
        type=int,
        default=0,
        help="CPU limit in millicores, 0 means no change"
    )
    parser.add_argument(
        "--mem-limit",
        type=int,
        default=0,
        help="Memory limit in MiB, 0 means no change"
    )
    parser.add_argument(
        "--scheduler-name",
        default=DEFAULT_NONE_EXIST_SCHEDULER_NAME,
        help="Name of a scheduler that does not exist in the cluster"
    )
    parser.add_argument(
        "--no-pin",
        action="store_true",
        help="Let the scheduler place the new pod instead of reusing the original node"
    )
    parser.add_argument(
        "--health-check-delay",
        type=float,
        default=DEFAULT_HEALTH_CHECK_DELAY_SECONDS,
        help="Seconds to wait before checking the new pod is running"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose/debug logging"
    )
    return parser


def load_cluster_config(args) -> None:
    """Load Kubernetes configuration from the command line options."""
    if args.in_cluster:
        config.load_incluster_config()
        logger.info("Loaded in-cluster configuration")
    elif args.kubeconfig:
        config.load_kube_config(config_file=args.kubeconfig)
        logger.info(f"Loaded kubeconfig from {args.kubeconfig}")
    elif args.master_url:
        configuration = client.Configuration()
        configuration.host = args.master_url
        client.Configuration.set_default(configuration)
        logger.info(f"Using master url {args.master_url}")
    else:
        config.load_kube_config()
        logger.info("Loaded kubeconfig from default location")


def resize(resize_config: ResizeConfig) -> None:
    """Resize the pod and check the result."""
    requested = requested_limits(resize_config.cpu_limit, resize_config.mem_limit)

    resizer = PodResizer(resize_config)
    if not resizer.resize(resize_config.namespace, resize_config.pod_name, requested):
        logger.info(f"pod {resize_config.pod_id} already has the requested limits")
        return

    logger.info(f"sleep {resize_config.health_check_delay_seconds} seconds to check the final state")
    time.sleep(resize_config.health_check_delay_seconds)
    verify_running(resize_config.namespace, resize_config.pod_name)

    logger.info(f"resize pod({resize_config.pod_id}) successfully")


def main(argv=None):
    """Main entry point."""
    args = build_parser().parse_args(argv)

    # Set log level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # Load Kubernetes configuration
    try:
        load_cluster_config(args)
    except Exception as e:
        logger.error(f"Failed to load Kubernetes config: {e}")
        sys.exit(1)

    resize_config = ResizeConfig.from_args(args)

    print_pod_resources(resize_config.namespace, resize_config.pod_name)
    try:
        resize(resize_config)
    except ResizeError as e:
        logger.error(f"resize pod failed: {resize_config.pod_id}, {e}")
        sys.exit(1)
    finally:
        print_pod_resources(resize_config.namespace, resize_config.pod_name)


if __name__ == "__main__":
    main()
