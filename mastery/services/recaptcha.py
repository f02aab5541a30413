# -*- coding: utf-8 -*-
"""
reCAPTCHA verification for the public lead forms.
"""
import logging
from typing import Optional

import requests
from flask import current_app

logger = logging.getLogger(__name__)

DEFAULT_VERIFY_URL = "https://www.google.com/recaptcha/api/siteverify"


def verify_recaptcha(token: str, remote_ip: Optional[str] = None, timeout: int = 5) -> bool:
    """
    Check a client token against the siteverify API.

    Returns True when RECAPTCHA_SECRET_KEY is not configured, so local and
    test environments work without Google credentials.
    """
    secret = current_app.config.get("RECAPTCHA_SECRET_KEY")
    if not secret:
        logger.warning("RECAPTCHA_SECRET_KEY not configured - skipping reCAPTCHA verification")
        return True

    payload = {"secret": secret, "response": token}
    if remote_ip:
        payload["remoteip"] = remote_ip

    try:
        response = requests.post(
            current_app.config.get("RECAPTCHA_VERIFY_URL") or DEFAULT_VERIFY_URL,
            data=payload,
            timeout=timeout
        )
        result = response.json()
    except (requests.RequestException, ValueError) as e:
        logger.error(f"reCAPTCHA verification error: {e}")
        return False

    if result.get("success") is not True:
        logger.info(f"reCAPTCHA rejected: {result.get('error-codes')}")
        return False
    return True
