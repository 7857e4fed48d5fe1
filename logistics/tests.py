"""
MediSpatch Logistics Tests
===========================

Tests for:
1. Pricing Engine (distance, multipliers, flat fallback)
2. Delivery lifecycle (status steps, tracking log, driver bookkeeping)
3. Live tracking simulation (movement, arrival, ETA)
4. Proof of delivery storage
5. Delivery request, tracking and driver API
"""

import re
import shutil
import tempfile
import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from unittest.mock import MagicMock

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework.test import APIClient

from core.models import User, UserRole
from logistics.models import (
    DeliveryRequest, DeliveryStatus, Driver, TrackingUpdate,
    Priority, PackageType, SimulationSpeed, TrafficCondition,
)
from logistics.services import lifecycle, simulation, proof_of_delivery
from logistics.services.pricing import PricingEngine, DEFAULT_ESTIMATED_COST


class FixedRandom:
    """Deterministic stand-in for the random module."""

    def __init__(self, value=0.99, choice=TrafficCondition.GOOD):
        self.value = value
        self.choice_value = choice

    def random(self):
        return self.value

    def choice(self, seq):
        return self.choice_value


def make_request(**overrides):
    fields = {
        'pickup_location': 'Memorial Hospital Lab, 100 Main St',
        'delivery_location': 'Westside Clinic, 42 Oak Ave',
        'pickup_lat': 41.8781,
        'pickup_lng': -87.6298,
        'delivery_lat': 41.8881,
        'delivery_lng': -87.6298,
        'requester_name': 'Dana Reyes',
        'company_name': 'Memorial Hospital',
        'contact_email': 'lab@memorial.test',
    }
    fields.update(overrides)
    return lifecycle.create_request(**fields)


def make_driver(**overrides):
    fields = {
        'name': 'Sam Ortiz',
        'phone': '555-0101',
        'vehicle_type': 'van',
    }
    fields.update(overrides)
    return Driver.objects.create(**fields)


class TestPricingEngine(TestCase):
    """Tests for the cost estimation."""

    def setUp(self):
        self.engine = PricingEngine()
        self.engine.base_fare = Decimal('15')
        self.engine.cost_per_mile = Decimal('2')
        self.engine.urgent_multiplier = Decimal('1.5')
        self.engine.temperature_multiplier = Decimal('1.3')

    def test_cost_formula(self):
        """15 + 10 miles * 2 = 35.00"""
        self.assertEqual(self.engine.calculate_cost(10), Decimal('35.00'))

    def test_urgent_multiplier(self):
        self.assertEqual(
            self.engine.calculate_cost(10, priority=Priority.URGENT),
            Decimal('52.50')
        )

    def test_temperature_controlled_multiplier(self):
        self.assertEqual(
            self.engine.calculate_cost(10, package_type=PackageType.TEMPERATURE_CONTROLLED),
            Decimal('45.50')
        )

    def test_haversine_same_point_is_zero(self):
        point = {'lat': 41.88, 'lng': -87.63}
        self.assertEqual(self.engine.get_haversine_distance(point, point), 0)

    def test_haversine_one_degree_latitude(self):
        """One degree of latitude is about 69 miles."""
        distance = self.engine.get_haversine_distance(
            {'lat': 0, 'lng': 0}, {'lat': 1, 'lng': 0}
        )
        self.assertAlmostEqual(distance, 69.1, delta=0.1)

    def test_missing_coordinates_uses_flat_estimate(self):
        distance, cost = self.engine.estimate(None, {'lat': 1, 'lng': 1})
        self.assertIsNone(distance)
        self.assertEqual(cost, DEFAULT_ESTIMATED_COST)


class TestDeliveryLifecycle(TestCase):
    """Tests for status updates and the tracking log."""

    def setUp(self):
        self.customer = User.objects.create_user(
            email='customer@medispatch.test', password='testpass123'
        )
        self.delivery = make_request(created_by=self.customer)
        self.driver = make_driver()

    # ==========================================
    # Creation
    # ==========================================

    def test_create_request_stores_submitted_fields(self):
        delivery = DeliveryRequest.objects.get(pk=self.delivery.pk)
        self.assertEqual(delivery.pickup_location, 'Memorial Hospital Lab, 100 Main St')
        self.assertEqual(delivery.delivery_location, 'Westside Clinic, 42 Oak Ave')
        self.assertEqual(delivery.company_name, 'Memorial Hospital')
        self.assertEqual(delivery.created_by, self.customer)
        self.assertEqual(delivery.status, DeliveryStatus.PENDING)
        self.assertEqual(delivery.priority, Priority.NORMAL)

    def test_create_request_generates_tracking_id(self):
        self.assertRegex(self.delivery.tracking_id, r'^MED-[A-Z0-9]{6}$')

    def test_create_request_estimates_distance_and_cost(self):
        self.assertIsNotNone(self.delivery.estimated_distance)
        self.assertGreater(self.delivery.estimated_cost, Decimal('15'))

    def test_create_request_starts_at_pickup(self):
        self.assertEqual(self.delivery.current_coordinates, self.delivery.pickup_coordinates)

    def test_create_request_logs_submission(self):
        updates = list(self.delivery.tracking_updates.all())
        self.assertEqual(len(updates), 1)
        self.assertEqual(updates[0].status, 'Request Submitted')
        self.assertEqual(updates[0].location, 'Online System')
        self.assertEqual(updates[0].note, 'Delivery request submitted')

    def test_create_request_ignores_status_field(self):
        delivery = make_request(status=DeliveryStatus.COMPLETED)
        self.assertEqual(delivery.status, DeliveryStatus.PENDING)

    # ==========================================
    # Status updates
    # ==========================================

    def test_update_status_changes_only_target(self):
        other = make_request()

        lifecycle.update_status(self.delivery, DeliveryStatus.IN_TRANSIT)

        self.delivery.refresh_from_db()
        other.refresh_from_db()
        self.assertEqual(self.delivery.status, DeliveryStatus.IN_TRANSIT)
        self.assertEqual(other.status, DeliveryStatus.PENDING)
        self.assertEqual(other.tracking_updates.count(), 1)

    def test_update_status_rejects_unknown_status(self):
        with self.assertRaises(ValueError):
            lifecycle.update_status(self.delivery, 'lost')

        self.delivery.refresh_from_db()
        self.assertEqual(self.delivery.status, DeliveryStatus.PENDING)
        self.assertEqual(self.delivery.tracking_updates.count(), 1)

    def test_step_table_labels(self):
        expected = [
            (DeliveryStatus.IN_PROGRESS, 'Driver Assigned', 'Admin Dashboard',
             'Request approved and driver assigned'),
            (DeliveryStatus.PICKED_UP, 'Picked Up', self.delivery.pickup_location,
             'Picked up by courier'),
            (DeliveryStatus.IN_TRANSIT, 'In Transit', 'En route to delivery location',
             'Package is in transit'),
            (DeliveryStatus.COMPLETED, 'Delivered', self.delivery.delivery_location,
             'Package delivered to destination'),
        ]
        for new_status, label, location, note in expected:
            lifecycle.update_status(self.delivery, new_status)
            update = self.delivery.tracking_updates.last()
            self.assertEqual((update.status, update.location, update.note), (label, location, note))

    def test_decline_step(self):
        lifecycle.decline_request(self.delivery)
        update = self.delivery.tracking_updates.last()
        self.assertEqual(self.delivery.status, DeliveryStatus.DECLINED)
        self.assertEqual(update.status, 'Declined')
        self.assertEqual(update.location, 'Admin Dashboard')
        self.assertEqual(update.note, 'Request declined')

    def test_update_status_overrides_location_and_note(self):
        lifecycle.update_status(
            self.delivery, DeliveryStatus.IN_TRANSIT,
            location='I-90 westbound', note='Detour due to construction'
        )
        update = self.delivery.tracking_updates.last()
        self.assertEqual(update.location, 'I-90 westbound')
        self.assertEqual(update.note, 'Detour due to construction')

    def test_in_progress_generates_missing_tracking_id(self):
        delivery = DeliveryRequest.objects.create(
            pickup_location='A', delivery_location='B'
        )
        self.assertIsNone(delivery.tracking_id)

        lifecycle.update_status(delivery, DeliveryStatus.IN_PROGRESS)

        delivery.refresh_from_db()
        self.assertRegex(delivery.tracking_id, r'^MED-[A-Z0-9]{6}$')

    def test_backwards_move_allowed_with_warning(self):
        lifecycle.update_status(self.delivery, DeliveryStatus.IN_TRANSIT)

        with self.assertLogs('logistics.services.lifecycle', level='WARNING'):
            lifecycle.update_status(self.delivery, DeliveryStatus.PICKED_UP)

        self.delivery.refresh_from_db()
        self.assertEqual(self.delivery.status, DeliveryStatus.PICKED_UP)

    # ==========================================
    # Driver bookkeeping
    # ==========================================

    def test_approve_with_driver(self):
        lifecycle.approve_request(self.delivery, driver=self.driver)

        self.driver.refresh_from_db()
        self.delivery.refresh_from_db()
        self.assertEqual(self.delivery.status, DeliveryStatus.IN_PROGRESS)
        self.assertEqual(self.delivery.assigned_driver, self.driver)
        self.assertEqual(self.driver.current_delivery, self.delivery)

    def test_busy_driver_cannot_take_second_delivery(self):
        lifecycle.assign_driver(self.delivery, self.driver)
        other = make_request()

        with self.assertRaises(ValueError):
            lifecycle.assign_driver(other, self.driver)

    def test_inactive_driver_cannot_be_assigned(self):
        self.driver.status = Driver.Status.INACTIVE
        self.driver.save()

        with self.assertRaises(ValueError):
            lifecycle.assign_driver(self.delivery, self.driver)

    def test_reassignment_releases_previous_driver(self):
        lifecycle.assign_driver(self.delivery, self.driver)
        second = make_driver(name='Lee Park')

        lifecycle.assign_driver(self.delivery, second)

        self.driver.refresh_from_db()
        second.refresh_from_db()
        self.assertIsNone(self.driver.current_delivery)
        self.assertEqual(second.current_delivery, self.delivery)

    def test_complete_with_proof_releases_driver(self):
        lifecycle.approve_request(self.delivery, driver=self.driver)

        lifecycle.complete_with_proof(self.delivery, 'https://cdn.test/pod.jpg')

        self.delivery.refresh_from_db()
        self.driver.refresh_from_db()
        self.assertEqual(self.delivery.status, DeliveryStatus.COMPLETED)
        self.assertEqual(self.delivery.proof_of_delivery_photo, 'https://cdn.test/pod.jpg')
        self.assertIsNone(self.driver.current_delivery)

    def test_complete_with_proof_requires_photo(self):
        with self.assertRaises(ValueError):
            lifecycle.complete_with_proof(self.delivery, '')

    def test_decline_releases_driver(self):
        lifecycle.approve_request(self.delivery, driver=self.driver)
        lifecycle.decline_request(self.delivery, reason='Out of service area')

        self.driver.refresh_from_db()
        self.assertIsNone(self.driver.current_delivery)
        self.assertIn('Out of service area', self.delivery.tracking_updates.last().note)

    def test_completed_status_update_releases_driver(self):
        lifecycle.approve_request(self.delivery, driver=self.driver)
        simulation.start_live_tracking(self.delivery, rng=FixedRandom())

        lifecycle.update_status(self.delivery, DeliveryStatus.COMPLETED)

        self.delivery.refresh_from_db()
        self.driver.refresh_from_db()
        self.assertIsNone(self.driver.current_delivery)
        self.assertFalse(self.delivery.is_live_tracking)

        lifecycle.assign_driver(make_request(), self.driver)
        self.driver.refresh_from_db()
        self.assertIsNotNone(self.driver.current_delivery)

    def test_declined_status_update_releases_driver(self):
        lifecycle.approve_request(self.delivery, driver=self.driver)

        lifecycle.update_status(self.delivery, DeliveryStatus.DECLINED)

        self.driver.refresh_from_db()
        self.assertIsNone(self.driver.current_delivery)

    def test_reset_to_pending_unassigns_driver(self):
        lifecycle.approve_request(self.delivery, driver=self.driver)

        lifecycle.reset_to_pending(self.delivery)

        self.delivery.refresh_from_db()
        self.driver.refresh_from_db()
        self.assertEqual(self.delivery.status, DeliveryStatus.PENDING)
        self.assertIsNone(self.delivery.assigned_driver)
        self.assertIsNone(self.driver.current_delivery)

    # ==========================================
    # Tracking log
    # ==========================================

    def test_tracking_updates_are_append_only(self):
        update = self.delivery.tracking_updates.first()
        update.note = 'edited'
        with self.assertRaises(ValueError):
            update.save()

    def test_tracking_updates_keep_insertion_order(self):
        stamp = timezone.now()
        for label in ('First', 'Second', 'Third'):
            lifecycle.add_tracking_update(self.delivery, label, timestamp=stamp)

        labels = list(self.delivery.tracking_updates.values_list('status', flat=True))
        self.assertEqual(labels[-3:], ['First', 'Second', 'Third'])

    # ==========================================
    # Lookup & formatting
    # ==========================================

    def test_get_by_tracking_id(self):
        self.assertEqual(lifecycle.get_by_tracking_id(self.delivery.tracking_id), self.delivery)
        self.assertEqual(lifecycle.get_by_tracking_id(self.delivery.tracking_id.lower()), self.delivery)

    def test_get_by_primary_key(self):
        self.assertEqual(lifecycle.get_by_tracking_id(str(self.delivery.pk)), self.delivery)

    def test_get_unknown_returns_none(self):
        self.assertIsNone(lifecycle.get_by_tracking_id('MED-ZZZZZZ'))
        self.assertIsNone(lifecycle.get_by_tracking_id(str(uuid.uuid4())))
        self.assertIsNone(lifecycle.get_by_tracking_id(''))

    def test_generate_tracking_id_format(self):
        for _ in range(20):
            self.assertTrue(re.fullmatch(r'MED-[A-Z0-9]{6}', lifecycle.generate_tracking_id()))

    def test_format_timestamp(self):
        self.assertEqual(
            lifecycle.format_timestamp(datetime(2025, 4, 16, 14, 22)),
            'Apr 16, 2025 2:22 PM'
        )
        self.assertEqual(
            lifecycle.format_timestamp(datetime(2025, 1, 2, 0, 5)),
            'Jan 2, 2025 12:05 AM'
        )


class TestSimulation(TestCase):
    """Tests for the live tracking simulation."""

    def setUp(self):
        self.driver = make_driver()
        self.delivery = make_request()
        lifecycle.approve_request(self.delivery, driver=self.driver)

    def test_calculate_movement_steps_toward_target(self):
        result = simulation.calculate_movement({'lat': 0, 'lng': 0}, {'lat': 0.01, 'lng': 0}, 0.001)
        self.assertAlmostEqual(result['lat'], 0.001)
        self.assertAlmostEqual(result['lng'], 0)

    def test_calculate_movement_arrival_threshold(self):
        self.assertIsNone(
            simulation.calculate_movement({'lat': 0, 'lng': 0}, {'lat': 0.0015, 'lng': 0}, 0.001)
        )

    def test_step_moves_delivery_and_driver(self):
        arrived = simulation.simulate_step(self.delivery, rng=FixedRandom())

        self.assertFalse(arrived)
        self.delivery.refresh_from_db()
        self.driver.refresh_from_db()
        self.assertAlmostEqual(self.delivery.current_lat, 41.8791)
        self.assertAlmostEqual(self.driver.current_lat, self.delivery.current_lat)
        self.assertAlmostEqual(self.driver.current_lng, self.delivery.current_lng)

    def test_heavy_traffic_shortens_step(self):
        self.delivery.traffic_condition = TrafficCondition.HEAVY
        self.delivery.save()

        simulation.simulate_step(self.delivery, rng=FixedRandom())

        self.delivery.refresh_from_db()
        self.assertAlmostEqual(self.delivery.current_lat, 41.8781 + 0.0004)

    def test_traffic_reroll(self):
        simulation.simulate_step(
            self.delivery, rng=FixedRandom(value=0.05, choice=TrafficCondition.MODERATE)
        )
        self.delivery.refresh_from_db()
        self.assertEqual(self.delivery.traffic_condition, TrafficCondition.MODERATE)

    def test_arrival_completes_and_frees_driver(self):
        self.delivery.current_lat = self.delivery.delivery_lat - 0.001
        self.delivery.current_lng = self.delivery.delivery_lng
        self.delivery.is_live_tracking = True
        self.delivery.save()

        arrived = simulation.simulate_step(self.delivery, rng=FixedRandom())

        self.assertTrue(arrived)
        self.delivery.refresh_from_db()
        self.driver.refresh_from_db()
        self.assertEqual(self.delivery.status, DeliveryStatus.COMPLETED)
        self.assertEqual(self.delivery.current_coordinates, self.delivery.delivery_coordinates)
        self.assertFalse(self.delivery.is_live_tracking)
        self.assertIsNone(self.driver.current_delivery)

        update = self.delivery.tracking_updates.last()
        self.assertEqual(update.status, 'Delivered')
        self.assertEqual(update.note, 'Package has been delivered successfully')

    def test_start_live_tracking(self):
        self.delivery.current_lat = None
        self.delivery.current_lng = None
        self.delivery.save()

        simulation.start_live_tracking(self.delivery, SimulationSpeed.FAST, rng=FixedRandom())

        self.delivery.refresh_from_db()
        self.assertTrue(self.delivery.is_live_tracking)
        self.assertEqual(self.delivery.simulation_speed, SimulationSpeed.FAST)
        self.assertEqual(self.delivery.current_coordinates, self.delivery.pickup_coordinates)

    def test_start_requires_movable_status(self):
        pending = make_request()
        with self.assertRaises(ValueError):
            simulation.start_live_tracking(pending)

    def test_start_requires_delivery_coordinates(self):
        self.delivery.delivery_lat = None
        self.delivery.save()
        with self.assertRaises(ValueError):
            simulation.start_live_tracking(self.delivery)

    def test_change_speed_validates(self):
        with self.assertRaises(ValueError):
            simulation.change_speed(self.delivery, 'warp')
        simulation.change_speed(self.delivery, SimulationSpeed.SLOW)
        self.delivery.refresh_from_db()
        self.assertEqual(self.delivery.simulation_speed, SimulationSpeed.SLOW)

    def test_reset_simulation(self):
        lifecycle.update_status(self.delivery, DeliveryStatus.IN_TRANSIT)
        self.delivery.current_lat = 41.885
        self.delivery.is_live_tracking = True
        self.delivery.save()

        simulation.reset_simulation(self.delivery)

        self.delivery.refresh_from_db()
        self.assertFalse(self.delivery.is_live_tracking)
        self.assertEqual(self.delivery.status, DeliveryStatus.IN_PROGRESS)
        self.assertEqual(self.delivery.current_coordinates, self.delivery.pickup_coordinates)

    def test_is_due_respects_speed_interval(self):
        now = timezone.now()
        self.delivery.simulation_speed = SimulationSpeed.SLOW
        self.delivery.last_simulated_at = now - timedelta(seconds=3)
        self.assertFalse(simulation.is_due(self.delivery, now))

        self.delivery.last_simulated_at = now - timedelta(seconds=5)
        self.assertTrue(simulation.is_due(self.delivery, now))

    def test_tick_only_steps_live_due_deliveries(self):
        simulation.start_live_tracking(self.delivery, SimulationSpeed.NORMAL, rng=FixedRandom())
        make_request()  # pending, not live

        first = simulation.run_simulation_tick()
        second = simulation.run_simulation_tick()

        self.assertEqual(first['stepped'], 1)
        self.assertEqual(second['stepped'], 0)

    def test_calculate_eta(self):
        eta = simulation.calculate_eta(
            {'lat': 0, 'lng': 0}, {'lat': 0.1, 'lng': 0}, TrafficCondition.GOOD
        )
        # ~11.1 km at 30 km/h
        self.assertEqual(eta['distance_km'], 11.1)
        self.assertEqual(eta['eta_minutes'], 22)

        heavy = simulation.calculate_eta(
            {'lat': 0, 'lng': 0}, {'lat': 0.1, 'lng': 0}, TrafficCondition.HEAVY
        )
        self.assertEqual(heavy['eta_minutes'], 67)

    def test_detailed_status(self):
        self.assertEqual(simulation.detailed_status(0.2), 'Arriving soon (less than 0.5km away)')
        self.assertEqual(simulation.detailed_status(0.8), 'Approaching destination')
        self.assertEqual(simulation.detailed_status(2), 'In delivery area')
        self.assertEqual(simulation.detailed_status(5), 'En route to delivery location')


class TestProofOfDelivery(TestCase):
    """Tests for proof photo validation and storage."""

    def setUp(self):
        self.media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.media_root, ignore_errors=True)

    def test_rejects_non_image(self):
        file = MagicMock(content_type='application/pdf', size=100)
        with self.assertRaisesMessage(ValueError, 'Please select an image file'):
            proof_of_delivery.validate_photo(file)

    def test_rejects_large_photo(self):
        file = MagicMock(content_type='image/jpeg', size=10 * 1024 * 1024 + 1)
        with self.assertRaisesMessage(ValueError, 'Image must be smaller than 10MB'):
            proof_of_delivery.validate_photo(file)

    def test_accepts_photo_at_limit(self):
        file = MagicMock(content_type='image/png', size=10 * 1024 * 1024)
        proof_of_delivery.validate_photo(file)

    def test_generate_file_name(self):
        self.assertEqual(
            proof_of_delivery.generate_file_name('abc', 'Photo.JPG', now_ms=1713277320000),
            'pod_abc_1713277320000.jpg'
        )
        self.assertTrue(
            proof_of_delivery.generate_file_name('abc', 'noext').endswith('.jpg')
        )

    def test_upload_photo_stores_file(self):
        delivery = make_request()
        photo = SimpleUploadedFile('pod.png', b'\x89PNG\r\n\x1a\nfake', content_type='image/png')

        with override_settings(MEDIA_ROOT=self.media_root):
            url = proof_of_delivery.upload_photo(delivery, photo)
            path = url.split('/media/', 1)[1]
            self.assertTrue(proof_of_delivery.photo_exists(path))

        self.assertIn(f'proof-of-delivery/pod_{delivery.pk}_', url)
        self.assertTrue(url.startswith('http'))

    def test_ensure_bucket_is_best_effort(self):
        with override_settings(MEDIA_ROOT=self.media_root):
            self.assertTrue(proof_of_delivery.ensure_bucket())


class TestDeliveryRequestAPI(TestCase):
    """Tests for the delivery request REST API."""

    def setUp(self):
        self.client = APIClient()
        self.admin = User.objects.create_user(
            email='admin@medispatch.test', password='testpass123', role=UserRole.ADMIN
        )
        self.customer = User.objects.create_user(
            email='customer@medispatch.test', password='testpass123'
        )
        self.driver_user = User.objects.create_user(
            email='driver@medispatch.test', password='testpass123', role=UserRole.DRIVER
        )
        self.driver = make_driver(user=self.driver_user)
        self.delivery = make_request(created_by=self.customer)

        self.media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.media_root, ignore_errors=True)

    def url(self, suffix=''):
        return f'/api/delivery-requests/{self.delivery.pk}/{suffix}'

    def test_customer_submits_request(self):
        self.client.force_authenticate(user=self.customer)
        response = self.client.post('/api/delivery-requests/', {
            'pickup_location': 'North Lab',
            'delivery_location': 'South Pharmacy',
            'pickup_coordinates': {'lat': 41.9, 'lng': -87.7},
            'delivery_coordinates': {'lat': 41.8, 'lng': -87.6},
            'priority': 'urgent',
            'package_type': 'specimen',
            'requester_name': 'Pat Kim',
            'contact_email': 'pat@northlab.test',
        }, format='json')

        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data['status'], 'pending')
        self.assertEqual(data['pickup_location'], 'North Lab')
        self.assertEqual(data['priority'], 'urgent')
        self.assertEqual(data['pickup_coordinates'], {'lat': 41.9, 'lng': -87.7})
        self.assertEqual(data['tracking_updates'][0]['status'], 'Request Submitted')

        created = DeliveryRequest.objects.get(pk=data['id'])
        self.assertEqual(created.created_by, self.customer)

    def test_submit_requires_locations(self):
        self.client.force_authenticate(user=self.customer)
        response = self.client.post('/api/delivery-requests/', {}, format='json')
        self.assertEqual(response.status_code, 400)

    def test_customer_sees_only_own_requests(self):
        make_request()
        self.client.force_authenticate(user=self.customer)
        response = self.client.get('/api/delivery-requests/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['count'], 1)

    def test_admin_approves_with_driver(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(self.url('approve/'), {'driver_id': str(self.driver.pk)}, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], 'in_progress')
        self.assertEqual(response.json()['assigned_driver'], str(self.driver.pk))

    def test_customer_cannot_approve(self):
        self.client.force_authenticate(user=self.customer)
        response = self.client.post(self.url('approve/'), {}, format='json')
        self.assertEqual(response.status_code, 403)

    def test_update_status_invalid_value(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(self.url('update_status/'), {'status': 'teleported'}, format='json')
        self.assertEqual(response.status_code, 400)

    def test_assigned_driver_updates_status(self):
        lifecycle.approve_request(self.delivery, driver=self.driver)
        self.client.force_authenticate(user=self.driver_user)

        response = self.client.post(self.url('update_status/'), {'status': 'picked_up'}, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], 'picked_up')

    def test_driver_completing_via_status_is_freed(self):
        lifecycle.approve_request(self.delivery, driver=self.driver)
        self.client.force_authenticate(user=self.driver_user)

        response = self.client.post(self.url('update_status/'), {'status': 'completed'}, format='json')
        self.assertEqual(response.status_code, 200)

        self.driver.refresh_from_db()
        self.assertIsNone(self.driver.current_delivery)

        next_delivery = make_request()
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(
            f'/api/delivery-requests/{next_delivery.pk}/assign_driver/',
            {'driver_id': str(self.driver.pk)}, format='json'
        )
        self.assertEqual(response.status_code, 200)

    def test_customer_cannot_edit_request(self):
        cost = self.delivery.estimated_cost
        self.client.force_authenticate(user=self.customer)

        response = self.client.patch(self.url(), {'estimated_cost': '0.01'}, format='json')

        self.assertEqual(response.status_code, 403)
        self.delivery.refresh_from_db()
        self.assertEqual(self.delivery.estimated_cost, cost)

    def test_admin_edit_keeps_estimates(self):
        cost = self.delivery.estimated_cost
        self.client.force_authenticate(user=self.admin)

        response = self.client.patch(self.url(), {
            'estimated_cost': '0.01',
            'special_instructions': 'Keep upright',
        }, format='json')

        self.assertEqual(response.status_code, 200)
        self.delivery.refresh_from_db()
        self.assertEqual(self.delivery.estimated_cost, cost)
        self.assertEqual(self.delivery.special_instructions, 'Keep upright')

    def test_unassigned_driver_cannot_see_delivery(self):
        self.client.force_authenticate(user=self.driver_user)
        response = self.client.post(self.url('update_status/'), {'status': 'picked_up'}, format='json')
        self.assertEqual(response.status_code, 404)

    def test_tracking_updates_list_and_append(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(self.url('tracking_updates/'), {
            'status': 'Delayed',
            'location': 'Loading dock',
            'note': 'Waiting for specimen',
        }, format='json')
        self.assertEqual(response.status_code, 201)

        response = self.client.get(self.url('tracking_updates/'))
        self.assertEqual([u['status'] for u in response.json()], ['Request Submitted', 'Delayed'])

    def test_customer_cannot_append_tracking_update(self):
        self.client.force_authenticate(user=self.customer)
        response = self.client.post(self.url('tracking_updates/'), {'status': 'Delayed'}, format='json')
        self.assertEqual(response.status_code, 403)

    def test_proof_upload_completes_delivery(self):
        lifecycle.approve_request(self.delivery, driver=self.driver)
        self.client.force_authenticate(user=self.driver_user)
        photo = SimpleUploadedFile('pod.png', b'\x89PNG\r\n\x1a\nfake', content_type='image/png')

        with override_settings(MEDIA_ROOT=self.media_root):
            response = self.client.post(self.url('proof/'), {'photo': photo}, format='multipart')

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['status'], 'completed')
        self.assertIn('proof-of-delivery/pod_', data['proof_of_delivery_photo'])
        self.driver.refresh_from_db()
        self.assertIsNone(self.driver.current_delivery)

    def test_proof_upload_rejects_non_image(self):
        self.client.force_authenticate(user=self.admin)
        doc = SimpleUploadedFile('pod.txt', b'not an image', content_type='text/plain')

        with override_settings(MEDIA_ROOT=self.media_root):
            response = self.client.post(self.url('proof/'), {'photo': doc}, format='multipart')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'Please select an image file')

    def test_live_tracking_start_and_eta(self):
        lifecycle.approve_request(self.delivery, driver=self.driver)
        self.client.force_authenticate(user=self.admin)

        response = self.client.post(self.url('live_tracking/'), {'action': 'start', 'speed': 'fast'}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['is_live_tracking'])

        response = self.client.get(self.url('eta/'))
        self.assertEqual(response.status_code, 200)
        self.assertIn('eta_minutes', response.json())
        self.assertIn('detailed_status', response.json())

    def test_live_tracking_speed_requires_value(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(self.url('live_tracking/'), {'action': 'speed'}, format='json')
        self.assertEqual(response.status_code, 400)

    def test_public_tracking_lookup(self):
        response = self.client.get(f'/api/track/{self.delivery.tracking_id}/')
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['tracking_id'], self.delivery.tracking_id)
        self.assertNotIn('contact_email', data)

    def test_public_tracking_unknown(self):
        response = self.client.get('/api/track/MED-000000/')
        self.assertEqual(response.status_code, 404)

    def test_request_stub_echoes_id(self):
        response = self.client.post('/api/requests', {'id': 'req-42'}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {
            'success': True,
            'message': 'Request received',
            'data': {'id': 'req-42'},
        })


class TestDriverAPI(TestCase):
    """Tests for the driver endpoints."""

    def setUp(self):
        self.client = APIClient()
        self.admin = User.objects.create_user(
            email='admin@medispatch.test', password='testpass123', role=UserRole.ADMIN
        )
        self.driver_user = User.objects.create_user(
            email='driver@medispatch.test', password='testpass123', role=UserRole.DRIVER
        )
        self.driver = make_driver(user=self.driver_user)

    def test_admin_creates_driver(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post('/api/drivers/', {
            'name': 'Kim Lee', 'vehicle_type': 'car', 'phone': '555-0199'
        }, format='json')
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['status'], 'active')

    def test_driver_cannot_create_driver(self):
        self.client.force_authenticate(user=self.driver_user)
        response = self.client.post('/api/drivers/', {'name': 'X', 'vehicle_type': 'car'}, format='json')
        self.assertEqual(response.status_code, 403)

    def test_driver_updates_own_location(self):
        self.client.force_authenticate(user=self.driver_user)
        response = self.client.post(
            f'/api/drivers/{self.driver.pk}/location/',
            {'lat': 41.9, 'lng': -87.6, 'address': 'Lake Shore Dr'},
            format='json'
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['current_coordinates'], {'lat': 41.9, 'lng': -87.6})

    def test_driver_sets_status(self):
        self.client.force_authenticate(user=self.driver_user)
        response = self.client.post(
            f'/api/drivers/{self.driver.pk}/status/', {'status': 'inactive'}, format='json'
        )
        self.assertEqual(response.status_code, 200)
        self.driver.refresh_from_db()
        self.assertEqual(self.driver.status, Driver.Status.INACTIVE)

    def test_my_deliveries(self):
        delivery = make_request()
        lifecycle.approve_request(delivery, driver=self.driver)
        make_request()

        self.client.force_authenticate(user=self.driver_user)
        response = self.client.get('/api/drivers/my_deliveries/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual([d['id'] for d in response.json()], [str(delivery.pk)])

    def test_my_deliveries_without_profile(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get('/api/drivers/my_deliveries/')
        self.assertEqual(response.status_code, 404)
