"""
Test suite for Reports module
Tests: metric math, dashboard KPIs, breakdowns, COD and financial reports, grouped report table, export, saved reports
"""
import io
from datetime import date
from decimal import Decimal

from django.core.cache import cache
from django.test import TestCase, SimpleTestCase
from openpyxl import load_workbook
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.parties.models import Customer
from backend.reports import metrics, services
from backend.reports.models import SavedReport

RANGE = '?date_from=2024-03-01&date_to=2024-04-30'


class MetricsTests(SimpleTestCase):
    rows = [
        {'revenue': Decimal('200'), 'cogs': Decimal('80'), 'shipping': Decimal('20'), 'ad_cost': Decimal('10'),
         'is_delivered': True, 'is_return': False, 'is_active': False},
        {'revenue': Decimal('100'), 'cogs': Decimal('40'), 'shipping': Decimal('20'), 'ad_cost': Decimal('0'),
         'is_delivered': False, 'is_return': True, 'is_active': False},
        {'revenue': Decimal('300'), 'cogs': Decimal('100'), 'shipping': Decimal('25'), 'ad_cost': Decimal('5'),
         'is_delivered': False, 'is_return': False, 'is_active': True},
    ]

    def test_aggregate(self):
        totals = metrics.aggregate_order_metrics(self.rows)
        self.assertEqual(totals['total_orders'], 3)
        self.assertEqual((totals['delivered'], totals['returns'], totals['active']), (1, 1, 1))
        self.assertEqual(totals['gross_sales'], Decimal('600'))
        self.assertEqual(totals['total_ad_cost'], Decimal('15'))
        self.assertEqual(totals['net_profit'], Decimal('300'))

    def test_reference_vector(self):
        def row(revenue, cogs, shipping, ad_cost, flag):
            return {'revenue': revenue, 'cogs': cogs, 'shipping': shipping, 'ad_cost': ad_cost,
                    'is_delivered': flag == 'delivered', 'is_return': flag == 'return', 'is_active': flag == 'active'}

        totals = metrics.aggregate_order_metrics([
            row(1000, 300, 100, 50, 'delivered'),
            row(800, 200, 80, 40, 'delivered'),
            row(500, 150, 50, 0, 'return'),
            row(1200, 400, 120, 60, 'active'),
        ])
        self.assertEqual((totals['total_orders'], totals['delivered'], totals['returns'], totals['active']), (4, 2, 1, 1))
        self.assertEqual(totals['gross_sales'], Decimal('3500'))
        self.assertEqual(totals['total_cogs'], Decimal('1050'))
        self.assertEqual(totals['total_shipping'], Decimal('350'))
        self.assertEqual(totals['total_ad_cost'], Decimal('150'))
        self.assertEqual(totals['net_profit'], Decimal('1950'))
        self.assertEqual(metrics.net_profit(1000, 300, 100, 50), Decimal('550'))
        self.assertEqual(metrics.net_profit(1000, 300, 100, 50, include_ad_cost=False), Decimal('600'))

    def test_ad_cost_can_be_left_out(self):
        totals = metrics.aggregate_order_metrics(self.rows, include_ad_cost=False)
        self.assertEqual(totals['total_ad_cost'], Decimal('0'))
        self.assertEqual(totals['net_profit'], Decimal('315'))

    def test_empty(self):
        totals = metrics.aggregate_order_metrics([])
        self.assertEqual(totals['total_orders'], 0)
        self.assertEqual(totals['net_profit'], Decimal('0'))

    def test_rates(self):
        self.assertEqual(metrics.delivery_rate(1, 3), 33.33)
        self.assertEqual(metrics.return_rate(0, 0), 0.0)
        self.assertEqual(metrics.average_order_value(Decimal('100'), 3), Decimal('33.33'))
        self.assertEqual(metrics.average_order_value(Decimal('100'), 0), Decimal('0'))

    def test_period_bounds(self):
        key, label, start, end = services.period_bounds(date(2024, 3, 6), 'week')
        self.assertEqual(key, '2024-W10')
        self.assertEqual((start, end), (date(2024, 3, 4), date(2024, 3, 10)))
        key, label, start, end = services.period_bounds(date(2024, 2, 14), 'month')
        self.assertEqual((key, label), ('2024-02', 'February 2024'))
        self.assertEqual(end, date(2024, 2, 29))
        self.assertEqual(services.period_bounds(date(2024, 2, 14), 'day')[0], '2024-02-14')


class ReportDataMixin:
    """Four counted orders across March/April 2024 plus one deleted order"""

    def build_orders(self):
        cache.clear()
        self.owner = TestDataFactory.create_user()
        self.business = TestDataFactory.create_business(owner=self.owner)
        self.carrier = TestDataFactory.create_carrier(self.business, name_ar='أرامكس')
        self.product_a = TestDataFactory.create_product(self.business)
        self.product_b = TestDataFactory.create_product(self.business)

        self.delivered = TestDataFactory.create_order(
            self.business, status_key='delivered', order_date=date(2024, 3, 4), revenue=Decimal('200'),
            cost=Decimal('80'), shipping_cost=Decimal('20'), ad_cost=Decimal('10'), carrier=self.carrier,
            products=[(self.product_a, 2)],
        )
        self.returned = TestDataFactory.create_order(
            self.business, status_key='returned', order_date=date(2024, 3, 6), revenue=Decimal('100'),
            cost=Decimal('40'), shipping_cost=Decimal('20'), carrier=self.carrier,
        )
        self.active = TestDataFactory.create_order(
            self.business, status_key='new', order_date=date(2024, 3, 12), revenue=Decimal('300'),
            cost=Decimal('100'), shipping_cost=Decimal('25'), ad_cost=Decimal('5'), carrier=self.carrier,
            products=[(self.product_a, 1), (self.product_b, 1)],
        )
        TestDataFactory.create_order(
            self.business, status_key='deleted', order_date=date(2024, 3, 12), revenue=Decimal('999'),
        )
        self.april = TestDataFactory.create_order(
            self.business, status_key='delivered', order_date=date(2024, 4, 2), revenue=Decimal('150'),
            cost=Decimal('50'), shipping_cost=Decimal('10'),
        )
        self.filters = {'date_from': '2024-03-01', 'date_to': '2024-04-30',
                        'include_ad_cost': True, 'aov_basis': 'delivered'}


class ReportServiceTests(ReportDataMixin, TestCase):
    def setUp(self):
        self.build_orders()

    def test_parse_filters(self):
        filters = services.parse_report_filters({'date_from': '2024-03-01', 'date_to': '2024-04-30',
                                                 'carrier': '7', 'include_ad_cost': 'false'})
        self.assertEqual(filters['carrier'], 7)
        self.assertFalse(filters['include_ad_cost'])
        self.assertEqual(filters['aov_basis'], 'delivered')
        with self.assertRaises(ValueError):
            services.parse_report_filters({'country': 'sa'})
        with self.assertRaises(ValueError):
            services.parse_report_filters({'date_from': '03/01/2024'})

    def test_kpis(self):
        kpis = services.get_kpis(self.business, self.filters)
        self.assertEqual(kpis['total_orders'], 4)
        self.assertEqual((kpis['delivered'], kpis['returns'], kpis['active']), (2, 1, 1))
        self.assertEqual(kpis['gross_sales'], 750.0)
        self.assertEqual(kpis['total_cogs'], 270.0)
        self.assertEqual(kpis['total_shipping'], 75.0)
        self.assertEqual(kpis['net_profit'], 390.0)
        self.assertEqual(kpis['delivery_rate'], 50.0)
        self.assertEqual(kpis['return_rate'], 25.0)
        self.assertEqual(kpis['aov'], 375.0)

    def test_kpi_options(self):
        filters = dict(self.filters, include_ad_cost=False, aov_basis='total')
        kpis = services.get_kpis(self.business, filters)
        self.assertEqual(kpis['net_profit'], 405.0)
        self.assertEqual(kpis['aov'], 187.5)
        self.assertEqual(kpis['aov_basis'], 'total')

    def test_kpis_follow_new_orders(self):
        self.assertEqual(services.get_kpis(self.business, self.filters)['total_orders'], 4)
        TestDataFactory.create_order(self.business, order_date=date(2024, 3, 20))
        self.assertEqual(services.get_kpis(self.business, self.filters)['total_orders'], 5)

    def test_filters(self):
        kpis = services.get_kpis.uncached(self.business, dict(self.filters, carrier=self.carrier.pk))
        self.assertEqual(kpis['total_orders'], 3)
        kpis = services.get_kpis.uncached(self.business, dict(self.filters, product=self.product_b.pk))
        self.assertEqual(kpis['total_orders'], 1)
        kpis = services.get_kpis.uncached(self.business, dict(self.filters, date_to='2024-03-31'))
        self.assertEqual(kpis['total_orders'], 3)

    def test_time_series(self):
        series = services.get_time_series(self.business, self.filters)
        self.assertEqual([p['date'] for p in series], ['2024-03-04', '2024-03-06', '2024-03-12', '2024-04-02'])
        self.assertEqual(series[0]['revenue'], 200.0)
        self.assertEqual(series[0]['net_profit'], 90.0)

    def test_carrier_breakdown(self):
        rows = services.get_breakdown(self.business, self.filters, 'carrier')
        self.assertEqual(rows[0]['id'], self.carrier.pk)
        self.assertEqual(rows[0]['name_ar'], 'أرامكس')
        self.assertEqual(rows[0]['total'], 3)
        self.assertEqual(rows[0]['delivery_rate'], 33.33)
        self.assertEqual(rows[1]['id'], None)

    def test_product_breakdown(self):
        rows = services.get_breakdown(self.business, self.filters, 'product')
        self.assertEqual(rows[0]['id'], self.product_a.pk)
        self.assertEqual(rows[0]['quantity'], 3)
        self.assertEqual(rows[0]['total'], 2)
        self.assertEqual(rows[0]['revenue'], 300.0)
        self.assertEqual(rows[0]['net_profit'], 180.0)
        self.assertEqual(rows[1]['id'], self.product_b.pk)

    def test_unknown_breakdown(self):
        with self.assertRaises(ValueError):
            services.get_breakdown(self.business, self.filters, 'planet')

    def test_table_by_week(self):
        table = services.get_report_table(self.business, self.filters, 'week')
        self.assertEqual([r['period'] for r in table['rows']], ['2024-W10', '2024-W11', '2024-W14'])
        self.assertEqual(table['rows'][0]['metrics']['total_orders'], 2)
        self.assertEqual(table['rows'][0]['date_from'], '2024-03-04')
        self.assertEqual(table['totals']['net_profit'], 390.0)

    def test_table_by_month(self):
        table = services.get_report_table(self.business, self.filters, 'month')
        self.assertEqual([(r['period'], r['metrics']['total_orders']) for r in table['rows']],
                         [('2024-03', 3), ('2024-04', 1)])

    def test_unknown_grouping_falls_back_to_day(self):
        table = services.get_report_table(self.business, self.filters, 'decade')
        self.assertEqual(table['group_by'], 'day')
        self.assertEqual(len(table['rows']), 4)

    def test_other_workspace_is_not_counted(self):
        other = TestDataFactory.create_business()
        self.assertEqual(services.get_kpis(other, self.filters)['total_orders'], 0)


class ReportAPITests(ReportDataMixin, TestCase):
    def setUp(self):
        self.build_orders()
        self.client = AuthenticatedAPIClient()
        self.client.use_business(self.owner, self.business)

    def test_dashboard(self):
        response = self.client.get(f'/api/v1/reports/dashboard/{RANGE}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(set(response.data), {'kpis', 'order_statistics', 'usage', 'time_series'})
        self.assertEqual(response.data['kpis']['total_orders'], 4)

    def test_kpis(self):
        response = self.client.get(f'/api/v1/reports/kpis/{RANGE}')
        self.assertEqual(response.data['net_profit'], 390.0)
        self.assertEqual(response.data['period'], {'from': '2024-03-01', 'to': '2024-04-30'})

    def test_invalid_filters(self):
        response = self.client.get('/api/v1/reports/kpis/?date_from=yesterday')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get('/api/v1/reports/table/?country=abc')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_breakdown_endpoint(self):
        response = self.client.get(f'/api/v1/reports/breakdown/product/{RANGE}')
        self.assertEqual(len(response.data), 2)
        response = self.client.get(f'/api/v1/reports/breakdown/planet/{RANGE}')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_time_series_endpoint(self):
        response = self.client.get(f'/api/v1/reports/time-series/{RANGE}')
        self.assertEqual(len(response.data), 4)

    def test_table_endpoint(self):
        response = self.client.get(f'/api/v1/reports/table/{RANGE}&group_by=month')
        self.assertEqual(response.data['group_by'], 'month')
        self.assertEqual(len(response.data['rows']), 2)

    def test_export(self):
        response = self.client.get(f'/api/v1/reports/export/{RANGE}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('report_2024-03-01_2024-04-30.xlsx', response['Content-Disposition'])
        sheet = load_workbook(io.BytesIO(response.content)).active
        self.assertEqual(sheet.cell(row=1, column=1).value, 'Period')
        self.assertEqual(sheet.max_row, 6)
        self.assertEqual(sheet.cell(row=6, column=1).value, 'Total')
        self.assertEqual(sheet.cell(row=6, column=4).value, 4)

    def test_requires_workspace(self):
        client = AuthenticatedAPIClient()
        client.authenticate_user(self.owner)
        response = client.get('/api/v1/reports/kpis/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class CollectionReportTests(TestCase):
    """May 2024: one order per collection status plus a deleted one"""

    def setUp(self):
        cache.clear()
        self.owner = TestDataFactory.create_user()
        self.business = TestDataFactory.create_business(owner=self.owner)
        country = TestDataFactory.create_country(self.business)
        self.riyadh = TestDataFactory.create_city(country, name_ar='الرياض')
        self.jeddah = TestDataFactory.create_city(country, name_ar='جدة')
        self.loyal = TestDataFactory.create_customer(self.business, name='Loyal')
        self.once = TestDataFactory.create_customer(self.business, name='Once')
        Customer.objects.filter(pk=self.loyal.pk).update(total_orders=2)
        Customer.objects.filter(pk=self.once.pk).update(total_orders=1)

        TestDataFactory.create_order(
            self.business, status_key='delivered', order_date=date(2024, 5, 2), revenue=Decimal('200'),
            cost=Decimal('80'), shipping_cost=Decimal('20'), cod_fees=Decimal('5'), ad_cost=Decimal('10'),
            city=self.riyadh, customer=self.loyal, collection_status='collected', collected_amount=Decimal('200'),
        )
        TestDataFactory.create_order(
            self.business, status_key='delivered', order_date=date(2024, 5, 5), revenue=Decimal('100'),
            cost=Decimal('40'), shipping_cost=Decimal('10'), cod_fees=Decimal('5'),
            city=self.riyadh, customer=self.loyal, collection_status='partial', collected_amount=Decimal('60'),
        )
        TestDataFactory.create_order(
            self.business, status_key='returned', order_date=date(2024, 5, 7), revenue=Decimal('150'),
            cost=Decimal('50'), shipping_cost=Decimal('15'), ad_cost=Decimal('5'),
            city=self.jeddah, customer=self.once, collection_status='failed',
        )
        TestDataFactory.create_order(
            self.business, status_key='new', order_date=date(2024, 5, 9), revenue=Decimal('50'),
            cost=Decimal('20'), shipping_cost=Decimal('5'), collection_status='pending',
        )
        TestDataFactory.create_order(
            self.business, status_key='deleted', order_date=date(2024, 5, 9), revenue=Decimal('999'),
            cod_fees=Decimal('50'), city=self.riyadh, customer=self.loyal, collection_status='collected',
        )
        self.filters = {'date_from': '2024-05-01', 'date_to': '2024-05-31',
                        'include_ad_cost': True, 'aov_basis': 'delivered'}

    def test_cod_report(self):
        report = services.get_cod_report(self.business, self.filters)
        self.assertEqual((report['total_pending'], report['total_collected'],
                          report['total_partial'], report['total_failed']), (1, 1, 1, 1))
        self.assertEqual(report['collection_rate'], 25.0)
        self.assertEqual(report['pending_value'], 90.0)
        self.assertEqual(report['collected_value'], 260.0)
        self.assertEqual(report['cod_fees'], 10.0)

    def test_financial_breakdown(self):
        data = services.get_financial_breakdown(self.business, self.filters)
        self.assertEqual(data['revenue'], 500.0)
        self.assertEqual(data['cogs'], 190.0)
        self.assertEqual(data['gross_profit'], 310.0)
        self.assertEqual(data['net_profit'], 235.0)
        self.assertEqual(data['profit_margin'], 47.0)
        self.assertEqual(data['roas'], 33.33)

    def test_financial_breakdown_without_ad_cost(self):
        data = services.get_financial_breakdown(self.business, {**self.filters, 'include_ad_cost': False})
        self.assertEqual(data['ad_cost'], 0.0)
        self.assertEqual(data['net_profit'], 250.0)
        self.assertEqual(data['roas'], 0.0)

    def test_city_breakdown(self):
        rows = services.get_breakdown(self.business, self.filters, 'city')
        self.assertEqual([r['id'] for r in rows], [self.riyadh.pk, self.jeddah.pk])
        self.assertEqual(rows[0]['total'], 2)
        self.assertEqual(rows[0]['delivery_rate'], 100.0)
        self.assertEqual(rows[0]['revenue'], 300.0)

    def test_customer_breakdown(self):
        rows = services.get_breakdown(self.business, self.filters, 'customer')
        self.assertEqual([r['id'] for r in rows], [self.loyal.pk, self.once.pk])
        self.assertEqual(rows[0]['name_ar'], 'Loyal')
        self.assertEqual(rows[0]['aov'], 150.0)
        self.assertEqual(rows[0]['first_order_date'], '2024-05-02')
        self.assertEqual(rows[0]['last_order_date'], '2024-05-05')
        self.assertTrue(rows[0]['is_repeat'])
        self.assertFalse(rows[1]['is_repeat'])

    def test_status_breakdown(self):
        rows = services.get_breakdown(self.business, self.filters, 'status')
        self.assertEqual(len(rows), 3)
        self.assertEqual(rows[0]['name_ar'], 'تم التوصيل')
        self.assertEqual(rows[0]['percentage'], 50.0)
        self.assertEqual(rows[0]['color'], '#22c55e')
        self.assertEqual(sum(r['percentage'] for r in rows), 100.0)

    def test_endpoints(self):
        client = AuthenticatedAPIClient()
        client.use_business(self.owner, self.business)
        query = '?date_from=2024-05-01&date_to=2024-05-31'
        response = client.get(f'/api/v1/reports/cod/{query}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_collected'], 1)
        response = client.get(f'/api/v1/reports/financial/{query}')
        self.assertEqual(response.data['net_profit'], 235.0)
        response = client.get(f'/api/v1/reports/breakdown/status/{query}')
        self.assertEqual(len(response.data), 3)
        response = client.get(f'/api/v1/reports/breakdown/city/{query}')
        self.assertEqual(len(response.data), 2)
        response = client.get('/api/v1/reports/cod/?date_from=01-05-2024')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class SavedReportTests(ReportDataMixin, TestCase):
    def setUp(self):
        self.build_orders()
        self.client = AuthenticatedAPIClient()
        self.client.use_business(self.owner, self.business)

    def _create(self, **overrides):
        payload = {
            'name': '  March weekly ',
            'group_by': 'week',
            'filters_json': {'date_from': '2024-03-01', 'date_to': '2024-03-31'},
        }
        payload.update(overrides)
        return self.client.post('/api/v1/reports/saved/', payload, format='json')

    def test_create_and_list(self):
        response = self._create()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['name'], 'March weekly')
        self.assertEqual(response.data['created_by'], self.owner.pk)
        response = self.client.get('/api/v1/reports/saved/')
        self.assertEqual(len(response.data), 1)

    def test_validation(self):
        self.assertEqual(self._create(name='   ').status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self._create(filters_json=['x']).status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self._create(group_by='year').status_code, status.HTTP_400_BAD_REQUEST)

    def test_run_with_overrides(self):
        report_id = self._create().data['id']
        response = self.client.get(f'/api/v1/reports/saved/{report_id}/run/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['report']['id'], report_id)
        self.assertEqual([r['period'] for r in response.data['rows']], ['2024-W10', '2024-W11'])

        response = self.client.get(f'/api/v1/reports/saved/{report_id}/run/?group_by=month&date_to=2024-04-30')
        self.assertEqual([r['period'] for r in response.data['rows']], ['2024-03', '2024-04'])

    def test_update_and_delete(self):
        report_id = self._create().data['id']
        response = self.client.patch(f'/api/v1/reports/saved/{report_id}/', {'group_by': 'month'}, format='json')
        self.assertEqual(response.data['group_by'], 'month')
        response = self.client.delete(f'/api/v1/reports/saved/{report_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(SavedReport.objects.filter(pk=report_id).exists())

    def test_agent_can_run_but_not_create(self):
        report_id = self._create().data['id']
        agent = TestDataFactory.add_member(self.business, role='agent')
        client = AuthenticatedAPIClient()
        client.use_business(agent, self.business)
        self.assertEqual(client.get(f'/api/v1/reports/saved/{report_id}/run/').status_code, status.HTTP_200_OK)
        response = client.post('/api/v1/reports/saved/', {'name': 'Mine'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_other_workspace_reports_are_hidden(self):
        report_id = self._create().data['id']
        outsider = TestDataFactory.create_user()
        other = TestDataFactory.create_business(owner=outsider)
        client = AuthenticatedAPIClient()
        client.use_business(outsider, other)
        self.assertEqual(client.get(f'/api/v1/reports/saved/{report_id}/').status_code, status.HTTP_404_NOT_FOUND)
