"""
AWS Lambda handler for the Procur Billing API.

This is the production entry point for AWS Lambda deployments.
For local development, use main.py (Flask app) instead.
"""

import base64
import json
import logging
import os

from billing import CheckoutProcessor
from billing.documents import document_to_dict
from billing.errors import NegativeSettlementError

# Configure logging
logger = logging.getLogger()
logger.setLevel(logging.INFO)

# Environment (dev, staging, prod)
ENVIRONMENT = os.environ.get("ENVIRONMENT", "dev")

# Initialize processor (reused across warm invocations)
processor = CheckoutProcessor()

# CORS headers for API Gateway
CORS_HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type,Authorization",
    "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
}

DOCUMENTS_PREFIX = "/documents/"


def lambda_handler(event, context):
    """
    Main Lambda entry point.

    Handles API Gateway events for:
    - GET /health
    - GET /api
    - POST /checkout/summary
    - POST /checkout/finalize
    - POST /documents/<kind>
    - OPTIONS (CORS preflight)
    """
    # Handle CORS preflight
    http_method = event.get("httpMethod") or event.get("requestContext", {}).get("http", {}).get("method", "")
    if http_method == "OPTIONS":
        return {"statusCode": 200, "headers": CORS_HEADERS, "body": ""}

    # Get path (supports both REST API and HTTP API formats)
    path = event.get("path") or event.get("rawPath", "")

    # Route to appropriate handler
    if path == "/health" and http_method == "GET":
        return handle_health()
    elif path == "/api" and http_method == "GET":
        return handle_api_info()
    elif path == "/checkout/summary" and http_method == "POST":
        return handle_request(event, lambda data: (200, processor.summarize_from_dict(data)))
    elif path == "/checkout/finalize" and http_method == "POST":
        return handle_request(event, lambda data: (201, processor.finalize_from_dict(data)))
    elif path.startswith(DOCUMENTS_PREFIX) and http_method == "POST":
        kind = path[len(DOCUMENTS_PREFIX):].strip("/")
        return handle_request(
            event, lambda data: (200, document_to_dict(processor.render_document_from_dict(kind, data)))
        )
    else:
        return _response(404, {"error": "Not found", "path": path})


def _response(status_code, payload):
    return {"statusCode": status_code, "headers": CORS_HEADERS, "body": json.dumps(payload)}


def _parse_body(event):
    """Return the JSON body as a dict, or None when the request has no body."""
    body = event.get("body", "")
    if not isinstance(body, str):
        return body
    if not body:
        return None
    # Handle base64 encoded body (API Gateway)
    if event.get("isBase64Encoded"):
        body = base64.b64decode(body).decode("utf-8")
    return json.loads(body)


def handle_health():
    """Health check endpoint."""
    return _response(200, {"status": "healthy", "environment": ENVIRONMENT})


def handle_api_info():
    """API information endpoint."""
    return _response(
        200,
        {
            "status": "ok",
            "message": "Procur Billing API",
            "version": "1.0",
            "environment": ENVIRONMENT,
            "runtime": "AWS Lambda",
            "endpoints": {
                "checkout_summary": "/checkout/summary [POST]",
                "checkout_finalize": "/checkout/finalize [POST]",
                "render_document": "/documents/<kind> [POST]",
                "health": "/health [GET]",
            },
        },
    )


def handle_request(event, action):
    """Parse the body, run `action(data) -> (status, payload)` and map billing errors to responses."""
    try:
        input_data = _parse_body(event)
        if not input_data:
            return _response(400, {"error": "No input data provided", "status": "failed"})

        order_number = input_data.get("order_number", "cart")
        logger.info(f"Handling {event.get('path') or event.get('rawPath')}: {order_number}")

        status_code, result = action(input_data)
        return _response(status_code, result)

    except json.JSONDecodeError as e:
        logger.error(f"JSON parse error: {str(e)}")
        return _response(400, {"error": f"Invalid JSON: {str(e)}", "status": "failed"})

    except NegativeSettlementError as e:
        # Fees exceed gross: surfaced for manual review, never clamped
        logger.error(f"Negative settlement: {str(e)}")
        return _response(
            422, {"error": str(e), "status": "settlement_review", "net_amount": float(e.net_amount)}
        )

    except (ValueError, KeyError, TypeError) as e:
        # Validation errors from the billing package (missing fields, bad rates, unknown options)
        logger.error(f"Validation error: {str(e)}")
        return _response(400, {"error": f"Validation error: {str(e)}", "status": "validation_failed"})

    except Exception as e:
        # Unexpected errors - log details but return generic message to avoid information disclosure
        logger.error(f"Unexpected processing error: {str(e)}", exc_info=True)
        return _response(500, {"error": "An unexpected error occurred during processing", "status": "failed"})
