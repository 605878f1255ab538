import pytest
import json
from app import create_app, load_config


@pytest.fixture
def client():
    """Create a test client backed by fresh order state"""
    app = create_app()
    app.config['TESTING'] = True
    with app.test_client() as client:
        with app.app_context():
            yield client


def place_order(client, customer='alice', dish_ids=(1,), **extra):
    payload = {'customer_name': customer, 'dish_ids': list(dish_ids)}
    payload.update(extra)
    return client.post('/api/orders', json=payload)


class TestHealthEndpoint:
    def test_health_check(self, client):
        """Test health check endpoint"""
        response = client.get('/api/health')
        assert response.status_code == 200

        data = json.loads(response.data)
        assert data['status'] == 'healthy'
        assert data['service'] == 'restaurant-order-intake'


class TestMenuEndpoint:
    def test_get_menu(self, client):
        """Test menu endpoint returns positions, names and prep times"""
        response = client.get('/api/menu')
        assert response.status_code == 200

        data = json.loads(response.data)
        assert data[0] == {'id': 1, 'name': 'Chicken Biryani', 'prep_time': 20}
        assert [item['id'] for item in data] == [1, 2, 3, 4]


class TestOrderEndpoints:
    def test_create_order_success(self, client):
        """Test successful order creation"""
        response = place_order(client, 'John Doe', [1, 3])
        assert response.status_code == 201

        data = json.loads(response.data)
        assert data['success'] is True
        assert 'message' in data
        order = data['order']
        assert order['order_id'] == 1
        assert order['customer_name'] == 'John Doe'
        assert order['items'] == ['Chicken Biryani', 'Masala Fries']
        assert order['prep_time'] == 30
        assert order['queue_wait_before_this'] == 0
        assert order['total_wait'] == 30
        assert order['cancel_window_minutes'] == 5

    def test_second_order_includes_queue_wait(self, client):
        place_order(client, 'John', [1, 3])
        response = place_order(client, 'Jane', [2])

        order = json.loads(response.data)['order']
        assert order['order_id'] == 2
        assert order['queue_wait_before_this'] == 30
        assert order['total_wait'] == 45

    def test_legacy_customer_key(self, client):
        response = client.post('/api/orders', json={'customer': 'Sam', 'dish_ids': [4]})
        assert response.status_code == 201
        assert json.loads(response.data)['order']['customer_name'] == 'Sam'

    def test_create_order_missing_data(self, client):
        """Test order creation with missing data"""
        response = client.post('/api/orders', json={'customer_name': 'John Doe'})
        assert response.status_code == 400

        data = json.loads(response.data)
        assert data['kind'] == 'malformed_request'

    def test_create_order_malformed_json(self, client):
        response = client.post('/api/orders', data='not json', content_type='application/json')
        assert response.status_code == 400
        assert json.loads(response.data)['kind'] == 'malformed_request'

    @pytest.mark.parametrize('dish_ids', [[], [9], ['x']])
    def test_create_order_invalid_selection(self, client, dish_ids):
        """Test empty or unknown dishes are rejected without touching the queue"""
        response = place_order(client, 'John', dish_ids)
        assert response.status_code == 400
        assert json.loads(response.data)['kind'] == 'invalid_selection'

        status = json.loads(client.get('/api/queue/status').data)
        assert status['queue_length'] == 0
        assert status['pending_wait'] == 0

    def test_create_order_with_discard(self, client):
        response = place_order(client, 'John', [2], decision='discard')
        assert response.status_code == 200

        data = json.loads(response.data)
        assert data['order']['status'] == 'cancelled'
        assert data['message'] == 'Order cancelled'

        later = json.loads(place_order(client, 'Jane', [1]).data)['order']
        assert later['order_id'] == 2
        assert later['queue_wait_before_this'] == 0

    def test_create_order_bad_decision(self, client):
        response = place_order(client, 'John', [2], decision='perhaps')
        assert response.status_code == 400
        assert json.loads(response.data)['kind'] == 'invalid_decision'


class TestDecisionEndpoint:
    def test_hold_then_commit(self, client):
        response = place_order(client, 'John', [1], hold=True)
        assert response.status_code == 202
        order_id = json.loads(response.data)['order']['order_id']

        status = json.loads(client.get('/api/queue/status').data)
        assert status['queue_length'] == 0
        assert status['awaiting_decision'] == 1

        response = client.post(f'/api/orders/{order_id}/decision', json={'decision': 'commit'})
        assert response.status_code == 200
        data = json.loads(response.data)
        assert data['order']['status'] == 'pending'
        assert data['message'] == 'Order confirmed'

        status = json.loads(client.get('/api/queue/status').data)
        assert status['queue_length'] == 1
        assert status['pending_wait'] == 20

    def test_hold_then_discard(self, client):
        order_id = json.loads(place_order(client, 'John', [1], hold=True).data)['order']['order_id']

        response = client.post(f'/api/orders/{order_id}/decision', json={'decision': 'discard'})
        assert response.status_code == 200
        assert json.loads(response.data)['order']['status'] == 'cancelled'

        cancellations = json.loads(client.get('/api/cancellations').data)['cancellations']
        assert [c['order_id'] for c in cancellations] == [order_id]
        assert json.loads(client.get('/api/queue/status').data)['queue_length'] == 0

    @pytest.mark.parametrize('extra', [{'hold': 'false'}, {'hold': 1}, {'hold': True, 'decision': 'commit'}])
    def test_bad_hold_rejected(self, client, extra):
        """Test hold must be a real boolean and cannot be mixed with a decision"""
        response = place_order(client, 'John', [1], **extra)
        assert response.status_code == 400
        assert json.loads(response.data)['kind'] == 'malformed_request'

        status = json.loads(client.get('/api/queue/status').data)
        assert status['queue_length'] == 0
        assert status['awaiting_decision'] == 0

    def test_hold_false_commits(self, client):
        response = place_order(client, 'John', [1], hold=False)
        assert response.status_code == 201

    def test_remove_held_order(self, client):
        order_id = json.loads(place_order(client, 'John', [1], hold=True).data)['order']['order_id']

        response = client.delete(f'/api/orders/{order_id}')
        assert response.status_code == 200
        assert json.loads(client.get('/api/queue/status').data)['awaiting_decision'] == 0

    def test_decide_unknown_order(self, client):
        response = client.post('/api/orders/99/decision', json={'decision': 'commit'})
        assert response.status_code == 404
        assert json.loads(response.data)['kind'] == 'unknown_order'

    def test_decide_missing_decision(self, client):
        response = client.post('/api/orders/1/decision', json={})
        assert response.status_code == 400


class TestStaffEndpoints:
    def test_serve_next_empty_queue(self, client):
        """Test serving when the queue is empty"""
        response = client.post('/api/orders/next')
        assert response.status_code == 204

    def test_serve_next(self, client):
        place_order(client, 'John', [1])
        place_order(client, 'Jane', [2])

        response = client.post('/api/orders/next')
        assert response.status_code == 200
        data = json.loads(response.data)
        assert data['order']['id'] == 1
        assert data['order']['status'] == 'served'

        status = json.loads(client.get('/api/queue/status').data)
        assert status['queue_length'] == 1
        assert status['pending_wait'] == 15
        assert status['served_count'] == 1

    def test_remove_order(self, client):
        place_order(client, 'John', [1])

        response = client.delete('/api/orders/1')
        assert response.status_code == 200
        assert json.loads(response.data)['message'] == 'Order removed'

        response = client.delete('/api/orders/1')
        assert response.status_code == 404

    def test_customer_orders(self, client):
        """Test getting orders for a specific customer"""
        place_order(client, 'John Doe', [1])
        place_order(client, 'Jane Smith', [2])
        place_order(client, 'John Doe', [3])

        response = client.get('/api/customer/John Doe/orders')
        assert response.status_code == 200

        data = json.loads(response.data)
        assert len(data['orders']) == 2
        assert all(order['customer_name'] == 'John Doe' for order in data['orders'])


class TestFeedbackEndpoints:
    def test_feedback_in_order(self, client):
        for comment in ('great food', 'fast too'):
            response = client.post('/api/feedback', json={'customer_name': 'alice', 'comment': comment})
            assert response.status_code == 201

        data = json.loads(client.get('/api/feedback').data)
        assert data['feedback']['alice'] == ['great food', 'fast too']

    @pytest.mark.parametrize('payload', [
        {'customer_name': 'alice', 'comment': ''},
        {'comment': 'hi'},
        {},
        {'customer_name': 5, 'comment': 'ok'},
        {'customer_name': ['bob'], 'comment': 'ok'},
    ])
    def test_feedback_rejected(self, client, payload):
        response = client.post('/api/feedback', json=payload)
        assert response.status_code == 400
        assert json.loads(response.data)['kind'] == 'malformed_request'

        listing = client.get('/api/feedback')
        assert listing.status_code == 200
        assert json.loads(listing.data)['feedback'] == {}

    def test_feedback_list_survives_bad_name(self, client):
        """Test a rejected non-string name does not break the listing"""
        client.post('/api/feedback', json={'customer_name': 5, 'comment': 'ok'})
        client.post('/api/feedback', json={'customer_name': 'alice', 'comment': 'great food'})

        response = client.get('/api/feedback')
        assert response.status_code == 200
        assert json.loads(response.data)['feedback'] == {'alice': ['great food']}


class TestAppConfig:
    def test_cors_origin_from_frontend_url(self, monkeypatch):
        monkeypatch.delenv('RENDER_ENVIRONMENT', raising=False)
        monkeypatch.setenv('FRONTEND_URL', 'http://kiosk.local:8080')

        assert load_config()['CORS_ORIGINS'] == 'http://kiosk.local:8080'

        app = create_app()
        with app.test_client() as client:
            response = client.get('/api/health', headers={'Origin': 'http://kiosk.local:8080'})
        assert response.headers.get('Access-Control-Allow-Origin') == 'http://kiosk.local:8080'

    def test_cancel_window_override(self):
        app = create_app(config={'CANCEL_WINDOW_MINUTES': 10})
        with app.test_client() as client:
            order = json.loads(place_order(client, 'John', [4]).data)['order']
        assert order['cancel_window_minutes'] == 10

    def test_apps_do_not_share_state(self):
        first = create_app().test_client()
        second = create_app().test_client()

        place_order(first, 'John', [1])

        assert json.loads(second.get('/api/queue/status').data)['queue_length'] == 0
