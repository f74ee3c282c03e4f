"""
INVITATIONS Appwrite Helper
===========================
Builds the Appwrite server SDK client for the function's project.
"""

from appwrite.client import Client

from lambdas.common.logger import get_logger

log = get_logger(__file__)


def get_appwrite_client(config) -> Client:
    """
    Create an authenticated Appwrite client from the invocation config.

    The client only carries authenticated context; no API calls are made here.
    """
    log.info(f"Initializing Appwrite client for project {config.appwrite_project_id}.")
    client = Client()
    client.set_endpoint(config.appwrite_endpoint)
    client.set_project(config.appwrite_project_id)
    client.set_key(config.appwrite_api_key)
    return client
