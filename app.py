from flask import Flask, request, jsonify
from flask_cors import CORS
from cancellation import CancellationGate, Decision, DEFAULT_CANCEL_WINDOW_MINUTES
from errors import OrderingError
from intake import IntakeCoordinator
from menu_catalog import MenuCatalog
import logging
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)


def load_config():
    """Read settings from the environment"""
    allowed_origins = os.environ.get('FRONTEND_URL', 'http://localhost:3000')
    if os.environ.get('RENDER_ENVIRONMENT'):
        cors_origins = [allowed_origins, "https://*.render.com", "https://*.up.render.com", "https://*.vercel.app"]
    else:
        # In development, only the configured frontend
        cors_origins = allowed_origins

    return {
        'CORS_ORIGINS': cors_origins,
        'CANCEL_WINDOW_MINUTES': int(os.environ.get('CANCEL_WINDOW_MINUTES', DEFAULT_CANCEL_WINDOW_MINUTES)),
        'LOG_LEVEL': os.environ.get('LOG_LEVEL', 'INFO').upper(),
    }


def build_coordinator(config):
    return IntakeCoordinator(
        MenuCatalog.default(),
        gate=CancellationGate(config['CANCEL_WINDOW_MINUTES']),
    )


def rejected(message, kind, status=400):
    return jsonify({'error': message, 'kind': kind}), status


def create_app(coordinator=None, config=None):
    settings = load_config()
    if config:
        settings.update(config)

    app = Flask(__name__)
    app.config.update(settings)
    CORS(app, resources={r"/*": {"origins": settings['CORS_ORIGINS']}})

    # Each app owns its order state; tests get a fresh one per app
    if coordinator is None:
        coordinator = build_coordinator(settings)
    app.extensions['intake'] = coordinator

    @app.errorhandler(OrderingError)
    def handle_ordering_error(error):
        if error.status_code >= 500:
            logger.error("Order request failed: %s", error)
        else:
            logger.warning("Order request rejected (%s): %s", error.kind, error)
        return jsonify(error.to_dict()), error.status_code

    def read_json():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return None
        return data

    # API Routes
    @app.route('/api/menu', methods=['GET'])
    def get_menu():
        """Menu with 1-based ids and prep times"""
        return jsonify(coordinator.catalog.to_list())

    @app.route('/api/orders', methods=['POST'])
    def create_order():
        """Create a new order, committed unless the customer cancels"""
        data = read_json()
        if data is None:
            return rejected('Invalid JSON or data format.', 'malformed_request')

        customer_name = data.get('customer_name') or data.get('customer')
        dish_ids = data.get('dish_ids')
        if not customer_name or not isinstance(customer_name, str) or dish_ids is None:
            return rejected('Customer name and dish_ids are required', 'malformed_request')

        hold = data.get('hold', False)
        if not isinstance(hold, bool):
            return rejected('hold must be true or false', 'malformed_request')
        if hold and data.get('decision') is not None:
            return rejected('Send either hold or decision, not both', 'malformed_request')

        if hold:
            quote = coordinator.quote_order(customer_name, dish_ids)
            return jsonify({
                'success': True,
                'order': quote.to_dict(),
                'message': f'Order #{quote.order_id} awaits confirmation; '
                           f'you can cancel within {quote.cancel_window_minutes} minutes'
            }), 202

        decide = None
        if data.get('decision') is not None:
            try:
                decision = Decision.parse(data['decision'])
            except ValueError as e:
                return rejected(str(e), 'invalid_decision')
            decide = lambda quote: decision

        receipt = coordinator.submit_order(customer_name, dish_ids, decide=decide)
        if not receipt.committed:
            return jsonify({
                'success': True,
                'order': receipt.to_dict(),
                'message': 'Order cancelled'
            })

        return jsonify({
            'success': True,
            'order': receipt.to_dict(),
            'message': f'Order confirmed! Ready in approximately {receipt.total_wait} minutes'
        }), 201

    @app.route('/api/orders/<int:order_id>/decision', methods=['POST'])
    def decide_order(order_id):
        """Confirm or cancel an order that is awaiting a decision"""
        data = read_json()
        if data is None or 'decision' not in data:
            return rejected('A decision of "commit" or "discard" is required', 'malformed_request')
        try:
            decision = Decision.parse(data['decision'])
        except ValueError as e:
            return rejected(str(e), 'invalid_decision')

        receipt = coordinator.decide_cancellation(order_id, decision)
        return jsonify({
            'success': True,
            'order': receipt.to_dict(),
            'message': 'Order confirmed' if receipt.committed else 'Order cancelled'
        })

    @app.route('/api/orders/next', methods=['POST'])
    def serve_next_order():
        """Serve the order at the head of the queue (staff only)"""
        order = coordinator.serve_next()
        if not order:
            return jsonify({'message': 'No orders in queue'}), 204
        return jsonify({'success': True, 'order': order.to_dict()})

    @app.route('/api/orders/<int:order_id>', methods=['DELETE'])
    def remove_order(order_id):
        """Take a pending order out of the queue (staff correction)"""
        order = coordinator.remove_order(order_id)
        if not order:
            return rejected('Order not found', 'unknown_order', 404)
        return jsonify({'success': True, 'order': order.to_dict(), 'message': 'Order removed'})

    @app.route('/api/queue/status', methods=['GET'])
    def get_queue_status():
        return jsonify(coordinator.queue_status())

    @app.route('/api/customer/<customer_name>/orders', methods=['GET'])
    def get_customer_orders(customer_name):
        """Pending orders for a specific customer"""
        orders = coordinator.customer_orders(customer_name)
        return jsonify({'orders': [order.to_dict() for order in orders]})

    @app.route('/api/cancellations', methods=['GET'])
    def get_cancellations():
        return jsonify({'cancellations': [record.to_dict() for record in coordinator.cancellations()]})

    @app.route('/api/feedback', methods=['POST'])
    def submit_feedback():
        data = read_json()
        if data is None:
            return rejected('Invalid feedback data.', 'malformed_request')

        customer_name = data.get('customer_name') or data.get('customer')
        comment = data.get('comment')
        if (not customer_name or not isinstance(customer_name, str)
                or not isinstance(comment, str) or not comment.strip()):
            return rejected('Customer name and a non-empty comment are required', 'malformed_request')

        coordinator.submit_feedback(customer_name, comment)
        return jsonify({'success': True, 'status': 'Feedback received.'}), 201

    @app.route('/api/feedback', methods=['GET'])
    def list_feedback():
        return jsonify({'feedback': coordinator.list_feedback()})

    # Health check endpoint
    @app.route('/api/health', methods=['GET'])
    def health_check():
        return jsonify({'status': 'healthy', 'service': 'restaurant-order-intake'})

    return app


app = create_app()

if __name__ == '__main__':
    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )
    print("Starting Restaurant Order Intake Service...")
    port = int(os.environ.get('PORT', 5002))
    debug_mode = os.environ.get('FLASK_ENV') != 'production'

    print(f"Server running on port {port}")
    print("API endpoints:")
    print("  GET    /api/menu - Get menu")
    print("  POST   /api/orders - Place order (hold=true to confirm later)")
    print("  POST   /api/orders/<id>/decision - Confirm or cancel a held order")
    print("  POST   /api/orders/next - Serve next order (staff)")
    print("  DELETE /api/orders/<id> - Remove a pending order (staff)")
    print("  GET    /api/queue/status - Get queue status")
    print("  GET    /api/customer/<name>/orders - Get customer orders")
    print("  GET    /api/cancellations - Cancellation log")
    print("  POST   /api/feedback - Leave feedback")
    print("  GET    /api/feedback - List feedback")
    print("  GET    /api/health - Health check")

    app.run(host='0.0.0.0', port=port, debug=debug_mode)
