from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

from django.test import SimpleTestCase

from billing.services.proration import calculate_proration

START = datetime(2024, 4, 1, tzinfo=dt_timezone.utc)
END = START + timedelta(days=30)
MID = START + timedelta(days=15)


class ProrationTest(SimpleTestCase):

    def test_equal_prices_charge_nothing(self):
        for price in ("0", "9.99", "29.99", "1000"):
            self.assertEqual(calculate_proration(price, price, START, END, now=MID), 0)

    def test_period_over_charges_full_new_price(self):
        for now in (END, END + timedelta(days=3)):
            self.assertEqual(calculate_proration("29.99", "79.99", START, END, now=now), 7999)
        # y compris à prix égaux: la période est terminée
        self.assertEqual(calculate_proration("29.99", "29.99", START, END, now=END), 2999)

    def test_upgrade_mid_cycle(self):
        self.assertEqual(calculate_proration(Decimal("29.99"), Decimal("79.99"), START, END, now=MID), 2500)

    def test_downgrade_never_negative(self):
        self.assertEqual(calculate_proration("79.99", "29.99", START, END, now=MID), 0)
        for day in range(0, 31):
            now = START + timedelta(days=day, hours=7)
            self.assertGreaterEqual(calculate_proration("99", "1", START, END, now=now), 0)
            self.assertGreaterEqual(calculate_proration("1", "99", START, END, now=now), 0)

    def test_partial_days_round_up(self):
        # 10 jours et 1 heure restants => 11 jours
        now = END - timedelta(days=10, hours=1)
        self.assertEqual(calculate_proration("0", "30", START, END, now=now), 1100)

    def test_half_cent_rounds_up(self):
        # 0.005 / jour * 1 jour => 0.5 cent => 1
        now = END - timedelta(hours=1)
        self.assertEqual(calculate_proration("0", "0.15", START, END, now=now), 1)

    def test_invalid_input_falls_back_to_full_price(self):
        self.assertEqual(calculate_proration(None, "79.99", START, END, now=MID), 7999)
        self.assertEqual(calculate_proration("-1", "79.99", START, END, now=MID), 7999)
        self.assertEqual(calculate_proration("29.99", "79.99", None, END, now=MID), 7999)
        self.assertEqual(calculate_proration("29.99", "79.99", END, START, now=MID), 7999)
        self.assertEqual(calculate_proration("29.99", "abc", START, END, now=MID), 0)
        self.assertEqual(calculate_proration("29.99", None, START, END, now=MID), 0)
