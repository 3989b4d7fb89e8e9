from flask import Flask, request, jsonify, send_file
from flask_cors import CORS
from billing import CheckoutProcessor
from billing.documents import StaticRasterExporter, document_to_dict
from billing.errors import CaptureFailure, NegativeSettlementError
import io
import os
import logging

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = Flask(__name__)

# Enable CORS for all routes (checkout and seller dashboards call the API directly)
CORS(app)

# Initialize the checkout processor and exporter
processor = CheckoutProcessor()
exporter = StaticRasterExporter()


def _validation_failed(e):
    logger.error(f"Validation error: {str(e)}")
    return jsonify({
        "error": str(e),
        "status": "validation_failed"
    }), 400


def _settlement_review(e):
    # Fees exceed gross: surfaced for manual review, never clamped
    logger.error(f"Negative settlement: {str(e)}")
    return jsonify({
        "error": str(e),
        "status": "settlement_review",
        "net_amount": float(e.net_amount)
    }), 422


def _failed(e):
    logger.error(f"Processing error: {str(e)}", exc_info=True)
    return jsonify({
        "error": "An unexpected error occurred during processing",
        "status": "failed"
    }), 500


def _order_payload():
    input_data = request.get_json(force=True, silent=True)
    if not input_data:
        return None
    return input_data


@app.route("/api", methods=["GET"])
def api_info():
    """API information endpoint"""
    return jsonify({
        "status": "ok",
        "message": "Procur Billing API",
        "version": "1.0",
        "endpoints": {
            "checkout_summary": "/checkout/summary [POST]",
            "checkout_finalize": "/checkout/finalize [POST]",
            "render_document": "/documents/<kind> [POST]",
            "export_document": "/documents/<kind>/export [POST]",
            "health": "/health [GET]"
        }
    }), 200


@app.route("/health", methods=["GET"])
def health():
    """Health check for monitoring"""
    return jsonify({"status": "healthy"}), 200


@app.route("/checkout/summary", methods=["POST"])
def checkout_summary():
    """
    Compute the monetary breakdown for a cart
    """
    try:
        input_data = _order_payload()
        if not input_data:
            return jsonify({
                "error": "No input data provided",
                "status": "failed"
            }), 400

        order_number = input_data.get("order_number", "cart")
        logger.info(f"Computing checkout summary: {order_number}")

        result = processor.summarize_from_dict(input_data)

        logger.info(f"Checkout summary computed: {order_number}")
        return jsonify(result), 200

    except NegativeSettlementError as e:
        return _settlement_review(e)
    except (ValueError, KeyError, TypeError) as e:
        return _validation_failed(e)
    except Exception as e:
        return _failed(e)


@app.route("/checkout/finalize", methods=["POST"])
def checkout_finalize():
    """
    Freeze an order's breakdown into a pending ledger transaction
    """
    try:
        input_data = _order_payload()
        if not input_data:
            return jsonify({
                "error": "No input data provided",
                "status": "failed"
            }), 400

        result = processor.finalize_from_dict(input_data)

        logger.info(f"Transaction created: {result['transaction_number']}")
        return jsonify(result), 201

    except NegativeSettlementError as e:
        return _settlement_review(e)
    except (ValueError, KeyError, TypeError) as e:
        return _validation_failed(e)
    except Exception as e:
        return _failed(e)


@app.route("/documents/<kind>", methods=["POST"])
def render_document(kind):
    """Render a receipt, invoice or checkout summary as a document model"""
    try:
        input_data = _order_payload()
        if not input_data:
            return jsonify({
                "error": "No input data provided",
                "status": "failed"
            }), 400

        document = processor.render_document_from_dict(kind, input_data)
        return jsonify(document_to_dict(document)), 200

    except NegativeSettlementError as e:
        return _settlement_review(e)
    except (ValueError, KeyError, TypeError) as e:
        return _validation_failed(e)
    except Exception as e:
        return _failed(e)


@app.route("/documents/<kind>/export", methods=["POST"])
def export_document(kind):
    """Render a document and stream it back as a single-page PDF"""
    try:
        input_data = _order_payload()
        if not input_data:
            return jsonify({
                "error": "No input data provided",
                "status": "failed"
            }), 400

        document = processor.render_document_from_dict(kind, input_data)
        exported = exporter.export_sync(document)

        return send_file(
            io.BytesIO(exported.content),
            mimetype=exported.mimetype,
            as_attachment=True,
            download_name=exported.filename,
        )

    except CaptureFailure as e:
        # Nothing was written; the client may retry the whole export
        logger.error(f"Capture failed: {str(e)}")
        return jsonify({
            "error": str(e),
            "status": "capture_failed"
        }), 500
    except NegativeSettlementError as e:
        return _settlement_review(e)
    except (ValueError, KeyError, TypeError) as e:
        return _validation_failed(e)
    except Exception as e:
        return _failed(e)


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8080))
    app.run(host="0.0.0.0", port=port, debug=False)
