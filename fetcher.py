import requests

from log import logger


# Debug helper: print the body of a URL, e.g. to check a running server
def fetch_url(url, timeout=10):
    headers = {
        "User-Agent": "imgserve"
    }
    logger.debug("Fetching %s", url)
    response = requests.get(url, headers=headers, timeout=timeout)
    response.raise_for_status()
    print(response.text)
    return response.text
