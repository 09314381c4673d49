from decimal import Decimal

import django.contrib.auth.models
import django.contrib.auth.validators
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import marketplace.validators


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('username', models.CharField(error_messages={'unique': 'A user with that username already exists.'}, help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.', max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name='username')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('email', models.EmailField(error_messages={'unique': 'A user with that email already exists.'}, help_text='Required. Used to log in.', max_length=254, unique=True, verbose_name='email address')),
                ('name', models.CharField(blank=True, default='', help_text='Display name', max_length=150, verbose_name='name')),
                ('college', models.CharField(blank=True, default='', help_text='Educational institution name', max_length=200, verbose_name='college')),
                ('verification_status', models.CharField(choices=[('UNVERIFIED', 'Unverified'), ('PENDING', 'Pending'), ('VERIFIED', 'Verified'), ('REJECTED', 'Rejected')], default='UNVERIFIED', help_text='Student ID verification state', max_length=20, verbose_name='verification status')),
                ('student_id_photo', models.URLField(blank=True, default='', help_text='URL of the submitted student ID photo', max_length=500, verbose_name='student ID photo')),
                ('email_verified', models.BooleanField(default=False, help_text='Whether the email one-time password was confirmed', verbose_name='email verified')),
                ('email_verification_otp', models.CharField(blank=True, default='', max_length=6, verbose_name='email verification OTP')),
                ('otp_expires_at', models.DateTimeField(blank=True, null=True, verbose_name='OTP expires at')),
                ('trust_score', models.PositiveSmallIntegerField(default=0, help_text='Derived score from 0 to 100', validators=[django.core.validators.MaxValueValidator(100)], verbose_name='trust score')),
                ('badges', models.JSONField(blank=True, default=list, help_text='Labels of the badges currently earned', verbose_name='badges')),
                ('avg_rating', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Mean of the star ratings received', max_digits=3, validators=[django.core.validators.MinValueValidator(Decimal('0.00'), message='Rating cannot be negative.'), django.core.validators.MaxValueValidator(Decimal('5.00'), message='Rating cannot exceed 5.00.')], verbose_name='average rating')),
                ('completed_deals', models.PositiveIntegerField(default=0, verbose_name='completed deals')),
                ('cancellation_rate', models.FloatField(default=0.0, help_text='Fraction of deals that ended in a refund', validators=[django.core.validators.MinValueValidator(0.0), django.core.validators.MaxValueValidator(1.0)], verbose_name='cancellation rate')),
                ('last_seen', models.DateTimeField(blank=True, null=True, verbose_name='last seen')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['email'], name='user_email_idx'),
                    models.Index(fields=['verification_status'], name='user_verification_idx'),
                    models.Index(fields=['trust_score'], name='user_trust_score_idx'),
                ],
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='Item',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(help_text='Listing title', max_length=200, verbose_name='name')),
                ('category', models.CharField(help_text='Free-form category such as electronics or books', max_length=50, verbose_name='category')),
                ('description', models.TextField(blank=True, default='', verbose_name='description')),
                ('price', models.DecimalField(decimal_places=2, help_text='Asking price in USD', max_digits=10, validators=[marketplace.validators.validate_positive_price], verbose_name='price')),
                ('condition', models.CharField(choices=[('NEW', 'New'), ('LIKE_NEW', 'Like New'), ('GOOD', 'Good'), ('FAIR', 'Fair'), ('POOR', 'Poor')], default='GOOD', max_length=10, verbose_name='condition')),
                ('photo', models.URLField(blank=True, default='', help_text='Primary photo URL', max_length=500, verbose_name='photo')),
                ('photos', models.JSONField(blank=True, default=list, help_text='Additional photo URLs', validators=[marketplace.validators.validate_photo_urls], verbose_name='photos')),
                ('availability_status', models.CharField(choices=[('AVAILABLE', 'Available'), ('RESERVED', 'Reserved'), ('SOLD', 'Sold')], default='AVAILABLE', max_length=10, verbose_name='availability status')),
                ('ai_price_rating', models.CharField(blank=True, default='', help_text='Fair, Overpriced, Underpriced or Great Deal', max_length=20, verbose_name='price rating')),
                ('avg_campus_price', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True, verbose_name='average campus price')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('seller', models.ForeignKey(help_text='User selling the item', on_delete=django.db.models.deletion.CASCADE, related_name='items', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'item',
                'verbose_name_plural': 'items',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['category'], name='item_category_idx'),
                    models.Index(fields=['availability_status'], name='item_availability_idx'),
                    models.Index(fields=['price'], name='item_price_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Transaction',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('status', models.CharField(choices=[('REQUESTED', 'Requested'), ('ACCEPTED', 'Accepted'), ('PAID', 'Paid'), ('MEETING', 'Meeting'), ('COMPLETED', 'Completed'), ('REFUNDED', 'Refunded')], default='REQUESTED', max_length=10, verbose_name='status')),
                ('escrow_amount', models.DecimalField(decimal_places=2, help_text='Item price captured when the purchase was requested', max_digits=10, verbose_name='escrow amount')),
                ('meetup_location', models.CharField(blank=True, default='', max_length=300, verbose_name='meetup location')),
                ('countdown_start', models.DateTimeField(blank=True, null=True, verbose_name='countdown start')),
                ('countdown_end', models.DateTimeField(blank=True, help_text='Meetup deadline; refunds open once it has passed', null=True, verbose_name='countdown end')),
                ('payment_id', models.CharField(blank=True, default='', max_length=100, verbose_name='payment id')),
                ('refund_id', models.CharField(blank=True, default='', max_length=100, verbose_name='refund id')),
                ('refund_reason', models.TextField(blank=True, default='', verbose_name='refund reason')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('buyer', models.ForeignKey(help_text='User buying the item', on_delete=django.db.models.deletion.CASCADE, related_name='purchases', to=settings.AUTH_USER_MODEL)),
                ('item', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='transactions', to='marketplace.item')),
                ('seller', models.ForeignKey(help_text='User selling the item', on_delete=django.db.models.deletion.CASCADE, related_name='sales', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'transaction',
                'verbose_name_plural': 'transactions',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status'], name='transaction_status_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(
                        condition=models.Q(('status__in', ['REQUESTED', 'ACCEPTED', 'PAID', 'MEETING'])),
                        fields=('buyer', 'item'),
                        name='unique_active_transaction_per_buyer_item',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='Message',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('content', models.TextField(max_length=2000, verbose_name='content')),
                ('is_ai_generated', models.BooleanField(default=False, verbose_name='AI generated')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('sender', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='messages_sent', to=settings.AUTH_USER_MODEL)),
                ('transaction', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='messages', to='marketplace.transaction')),
            ],
            options={
                'verbose_name': 'message',
                'verbose_name_plural': 'messages',
                'ordering': ['created_at', 'id'],
                'indexes': [
                    models.Index(fields=['transaction', 'created_at'], name='message_tx_created_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Rating',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('stars', models.PositiveSmallIntegerField(validators=[django.core.validators.MinValueValidator(1, message='Rating must be at least 1.'), django.core.validators.MaxValueValidator(5, message='Rating must be at most 5.')], verbose_name='stars')),
                ('comment', models.CharField(blank=True, default='', max_length=500, verbose_name='comment')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('from_user', models.ForeignKey(help_text='User giving the rating', on_delete=django.db.models.deletion.CASCADE, related_name='ratings_given', to=settings.AUTH_USER_MODEL)),
                ('transaction', models.ForeignKey(help_text='Completed transaction the rating was given for', on_delete=django.db.models.deletion.CASCADE, related_name='ratings', to='marketplace.transaction')),
                ('user', models.ForeignKey(help_text='User being rated', on_delete=django.db.models.deletion.CASCADE, related_name='ratings_received', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'rating',
                'verbose_name_plural': 'ratings',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['from_user'], name='rating_from_user_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('user', 'from_user'), name='unique_rating_per_rater'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Dispute',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('evidence_text', models.TextField(help_text='Description of the problem', verbose_name='evidence')),
                ('photos', models.JSONField(blank=True, default=list, validators=[marketplace.validators.validate_photo_urls], verbose_name='photos')),
                ('decision', models.CharField(choices=[('PENDING', 'Pending'), ('BUYER_FAVOR', 'Buyer favor'), ('SELLER_FAVOR', 'Seller favor'), ('SPLIT', 'Split'), ('DISMISSED', 'Dismissed')], default='PENDING', max_length=15, verbose_name='decision')),
                ('confidence', models.PositiveSmallIntegerField(default=0, validators=[django.core.validators.MaxValueValidator(100)], verbose_name='confidence')),
                ('ai_summary', models.TextField(blank=True, default='', help_text='Reasoning behind the suggested decision', verbose_name='summary')),
                ('suggested_action', models.CharField(blank=True, default='', max_length=300, verbose_name='suggested action')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('resolved_at', models.DateTimeField(blank=True, null=True, verbose_name='resolved at')),
                ('raised_by', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='disputes_raised', to=settings.AUTH_USER_MODEL)),
                ('transaction', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='dispute', to='marketplace.transaction')),
            ],
            options={
                'verbose_name': 'dispute',
                'verbose_name_plural': 'disputes',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['decision'], name='dispute_decision_idx'),
                ],
            },
        ),
    ]
