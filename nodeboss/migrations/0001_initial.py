# Generated migration for Node Boss app

from decimal import Decimal
from django.conf import settings
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='NodeBoss',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200, verbose_name='Name')),
                ('description', models.TextField(blank=True, null=True, verbose_name='Description')),
                ('price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, verbose_name='Price')),
                ('status', models.CharField(choices=[('active', 'Active'), ('inactive', 'Inactive')], default='active', max_length=20, verbose_name='Status')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_node_bosses', to=settings.AUTH_USER_MODEL, verbose_name='Created By')),
            ],
            options={
                'verbose_name': 'Node Boss',
                'verbose_name_plural': 'Node Bosses',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='NodeShare',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('cost', models.DecimalField(decimal_places=2, default=Decimal('2000.00'), max_digits=12, verbose_name='Cost')),
                ('sold', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, verbose_name='Sold')),
                ('remaining', models.DecimalField(decimal_places=2, default=Decimal('2000.00'), max_digits=12, verbose_name='Remaining')),
                ('status', models.CharField(choices=[('open', 'Open'), ('closed', 'Closed')], default='open', max_length=20, verbose_name='Status')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
                ('node_boss', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='shares', to='nodeboss.nodeboss', verbose_name='Node Boss')),
            ],
            options={
                'verbose_name': 'Node Share',
                'verbose_name_plural': 'Node Shares',
                'ordering': ['created_at', 'id'],
            },
        ),
        migrations.CreateModel(
            name='NodeSell',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12, verbose_name='Amount')),
                ('buyer_name', models.CharField(max_length=255, verbose_name='Buyer Name')),
                ('buyer_email', models.EmailField(max_length=255, verbose_name='Buyer Email')),
                ('message', models.TextField(blank=True, null=True, verbose_name='Message')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('completed', 'Completed'), ('failed', 'Failed'), ('canceled', 'Canceled')], default='pending', max_length=20, verbose_name='Status')),
                ('payment_method', models.CharField(blank=True, max_length=50, null=True, verbose_name='Payment Method')),
                ('transaction_id', models.CharField(blank=True, max_length=255, null=True, verbose_name='Transaction ID')),
                ('certificate_id', models.CharField(max_length=20, unique=True, verbose_name='Certificate ID')),
                ('purchase_date', models.DateTimeField(blank=True, null=True, verbose_name='Purchase Date')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
                ('node_boss', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='sells', to='nodeboss.nodeboss', verbose_name='Node Boss')),
                ('node_share', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='sells', to='nodeboss.nodeshare', verbose_name='Node Share')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='node_sells', to=settings.AUTH_USER_MODEL, verbose_name='Buyer Account')),
            ],
            options={
                'verbose_name': 'Node Sell',
                'verbose_name_plural': 'Node Sells',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='NodeReferral',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('referral_link', models.CharField(max_length=100, unique=True, verbose_name='Referral Link')),
                ('commission_percentage', models.DecimalField(decimal_places=2, default=Decimal('20.00'), max_digits=5, validators=[django.core.validators.MinValueValidator(Decimal('0')), django.core.validators.MaxValueValidator(Decimal('100'))], verbose_name='Commission %')),
                ('is_big_boss', models.BooleanField(default=False, verbose_name='Big Boss')),
                ('level', models.PositiveSmallIntegerField(default=1, verbose_name='Level')),
                ('status', models.CharField(choices=[('inactive', 'Inactive'), ('active', 'Active')], default='inactive', max_length=20, verbose_name='Status')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
                ('node_boss', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='referrals', to='nodeboss.nodeboss', verbose_name='Node Boss')),
                ('node_sell', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='enrolled_referrals', to='nodeboss.nodesell', verbose_name='Triggering Sale')),
                ('node_share', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='referrals', to='nodeboss.nodeshare', verbose_name='Node Share')),
                ('parent_referral', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='child_referrals', to='nodeboss.nodereferral', verbose_name='Parent Referral')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='node_referrals', to=settings.AUTH_USER_MODEL, verbose_name='User')),
            ],
            options={
                'verbose_name': 'Node Referral',
                'verbose_name_plural': 'Node Referrals',
                'ordering': ['-created_at'],
                'constraints': [
                    models.UniqueConstraint(fields=('user', 'node_boss'), name='unique_referral_per_user_node_boss'),
                ],
            },
        ),
        migrations.AddField(
            model_name='nodesell',
            name='node_referral',
            field=models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='node_sells', to='nodeboss.nodereferral', verbose_name='Referral Used'),
        ),
    ]
