"""
HTTP Action API

A small Flask application that lets wallets and web clients drive the default
value-receipt path over HTTP. The same engine instance as the MCP server is used.

Routes:
- GET     /purchase_action           action metadata and current sale parameters
- POST    /purchase_action           send value: {"account": <address>, "value": <int>}
- OPTIONS /purchase_action           CORS preflight
- GET     /balances/<address>        token balance and ledger record of an address
"""
from typing import Any, Dict, Tuple

from flask import Flask, jsonify, request

from hotoken_reservation import config
from hotoken_reservation import server
from hotoken_reservation.errors import ReservationError
from mcp.server.fastmcp.utilities.logging import get_logger

logger = get_logger(__name__)

app = Flask(__name__)

# --- Action Metadata ---
ACTION_TITLE = "Hotoken Reservation"
ACTION_DESCRIPTION = "Reserve HTKN by sending value from a whitelisted address."
ACTION_LABEL = "Reserve Tokens"


def get_cors_headers(origin: str) -> Dict[str, str]:
    """Get CORS headers with origin validation."""
    allowed_origin = "*"
    if "*" not in config.CORS_ALLOWED_ORIGINS:
        if origin in config.CORS_ALLOWED_ORIGINS:
            allowed_origin = origin
        else:
            allowed_origin = config.CORS_ALLOWED_ORIGINS[0] if config.CORS_ALLOWED_ORIGINS else "null"

    return {
        'Access-Control-Allow-Origin': allowed_origin,
        'Access-Control-Allow-Methods': 'GET, POST, OPTIONS',
        'Access-Control-Allow-Headers': 'Content-Type, Authorization',
        'Access-Control-Max-Age': '3600',
        'Access-Control-Allow-Credentials': 'false'
    }


# --- Flask Routes ---

@app.route('/purchase_action', methods=['OPTIONS'])
def handle_options_purchase() -> Tuple[str, int, Dict[str, str]]:
    """Handles CORS preflight requests."""
    origin = request.headers.get('Origin', '*')
    return '', 204, get_cors_headers(origin)


@app.route('/purchase_action', methods=['GET'])
def get_purchase_action_metadata() -> Tuple[Any, int, Dict[str, str]]:
    """Provides metadata for the purchase action."""
    cors_headers = get_cors_headers(request.headers.get('Origin', '*'))
    reservation = server.reservation
    currency = reservation.get_funding_currency()

    metadata = {
        "icon": config.ACTION_ICON_URL,
        "title": ACTION_TITLE,
        "description": ACTION_DESCRIPTION,
        "label": ACTION_LABEL,
        "sale": {
            "funding_currency": currency,
            "usd_rate": reservation.get_usd_rate(currency),
            "discount_rate": reservation.get_discount_rate(),
            "minimum_purchase": reservation.get_minimum_purchase(),
            "htkn_per_eth": reservation.get_htkn_per_eth(),
            "token_sold": reservation.get_token_sold(),
            "total_supply": reservation.get_total_supply(),
        },
        "parameters": [
            {"name": "account", "label": "Sending address", "required": True},
            {"name": "value", "label": f"Value in minor units of {currency}", "required": True},
        ]
    }
    return jsonify(metadata), 200, cors_headers


@app.route('/purchase_action', methods=['POST'])
def post_purchase_action() -> Tuple[Any, int, Dict[str, str]]:
    """Handles the POST request that sends value to the sale."""
    cors_headers = get_cors_headers(request.headers.get('Origin', '*'))

    try:
        if not request.is_json:
            return jsonify({"message": "Content-Type must be application/json"}), 415, cors_headers

        payload = request.get_json(silent=True)
        if not payload:
            return jsonify({"message": "Empty or invalid JSON payload"}), 400, cors_headers

        account = payload.get("account")
        if not isinstance(account, str) or not account.strip():
            return jsonify({"message": "Account must be a non-empty string"}), 400, cors_headers

        try:
            value = int(payload.get("value"))
        except (ValueError, TypeError):
            return jsonify({"message": "Value must be a valid integer"}), 400, cors_headers
        if value <= 0:
            return jsonify({"message": "Value must be positive"}), 400, cors_headers

        receipt = server.reservation.purchase(account.strip(), value)
        status = 200 if receipt.committed else 409
        return jsonify(receipt.model_dump(mode="json")), status, cors_headers

    except Exception as e:
        logger.exception(f"Unexpected error in post_purchase_action: {e}")
        return jsonify({"message": "An unexpected server error occurred"}), 500, cors_headers


@app.route('/balances/<address>', methods=['GET'])
def get_balance(address: str) -> Tuple[Any, int, Dict[str, str]]:
    """Returns the token balance and contribution record of an address."""
    cors_headers = get_cors_headers(request.headers.get('Origin', '*'))
    reservation = server.reservation
    try:
        record = reservation.get_ledger_record(address)
        body = {
            "address": address,
            "balance": reservation.balance_of(address),
            "whitelisted": reservation.exists_in_whitelist(address),
            "ledger": record.model_dump(mode="json") if record is not None else None,
        }
        return jsonify(body), 200, cors_headers
    except ReservationError as e:
        return jsonify({"message": str(e)}), 400, cors_headers


# --- Main Execution (for running Flask app directly) ---
if __name__ == '__main__':
    port = config.ACTIONS_PORT
    logger.info(f"Starting Flask Action API server on port {port}...")
    # Consider using a production server like gunicorn/uvicorn instead of Flask's dev server
    app.run(host='0.0.0.0', port=port, debug=False)
