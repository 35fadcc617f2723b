"""
Sources for the text of previously stored documents, addressed by a file
reference instead of raw text in the generation request.
"""
from abc import ABC, abstractmethod
from typing import Optional
import logging
import os
import urllib.parse

import requests


class DocumentSource(ABC):
    """Abstract base class for all stored-document sources."""
    @abstractmethod
    def get_text(self, reference: str) -> Optional[str]:
        """
        Retrieves the extracted text of a stored document.

        Args:
            reference (str): The document's file reference.

        Returns:
            Optional[str]: The text content, or None if retrieval fails.
        """
        pass


class LocalDocumentSource(DocumentSource):
    """Reads extracted document text from files under a root directory."""

    def __init__(self, root_dir: str, encoding: str = 'utf-8'):
        self.root_dir = os.path.normpath(os.path.abspath(root_dir))
        self.encoding = encoding

    def _resolve(self, reference: str) -> Optional[str]:
        path = os.path.normpath(os.path.join(self.root_dir, reference))
        if os.path.commonpath([self.root_dir, path]) != self.root_dir:
            logging.error("Document reference '%s' escapes the document root.", reference)
            return None
        return path

    def get_text(self, reference: str) -> Optional[str]:
        filepath = self._resolve(reference)
        if filepath is None:
            return None

        logging.info("Attempting to read document from: %s", filepath)
        if not os.path.isfile(filepath):
            logging.error("Error: Path is not a file or does not exist at %s", filepath)
            return None

        try:
            with open(filepath, 'r', encoding=self.encoding) as f:
                return f.read()
        except PermissionError as e:
            logging.error("Permission denied when trying to read file %s: %s", filepath, e)
            return None
        except UnicodeDecodeError as e:
            logging.error("Error decoding file %s with encoding '%s': %s", filepath, self.encoding, e)
            return None
        except OSError as e:
            logging.error("Error reading file %s: %s", filepath, e)
            return None


class HttpDocumentSource(DocumentSource):
    """Downloads extracted document text from the application's file service."""

    def __init__(self, base_url: str, token: Optional[str] = None, timeout: int = 30):
        parsed_url = urllib.parse.urlparse(base_url)
        if not all([parsed_url.scheme, parsed_url.netloc]):
            logging.error("Invalid URL format: %s", base_url)
            raise ValueError("Invalid URL format. Must be a complete URL with scheme and netloc.")
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout

    def get_text(self, reference: str) -> Optional[str]:
        url = f"{self.base_url}/{urllib.parse.quote(reference)}"
        logging.info("Attempting to download document from: %s", url)

        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        try:
            r = requests.get(url, headers=headers, timeout=self.timeout)
            r.raise_for_status()
        except requests.exceptions.HTTPError as e:
            logging.error("HTTP error occurred: %s", e)
            return None
        except requests.exceptions.ConnectionError as e:
            logging.error("Connection error occurred: %s", e)
            return None
        except requests.exceptions.Timeout as e:
            logging.error("Request timed out after %d seconds: %s", self.timeout, e)
            return None
        except requests.exceptions.RequestException as e:
            logging.error("An unexpected error occurred during the request: %s", e)
            return None

        content_type = r.headers.get('Content-Type', '').split(';')[0]
        if not content_type.startswith('text/'):
            logging.error("Expected document text, but received Content-Type: %s", content_type)
            return None
        return r.text
