from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('logistics', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='deliveryrequest',
            name='company_name',
            field=models.CharField(blank=True, max_length=200, verbose_name='Company'),
        ),
        migrations.AddField(
            model_name='deliveryrequest',
            name='proof_of_delivery_photo',
            field=models.URLField(blank=True, max_length=500, verbose_name='Proof of delivery photo'),
        ),
    ]
