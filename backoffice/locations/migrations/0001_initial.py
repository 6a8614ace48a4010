from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Site',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.CharField(max_length=50, unique=True)),
                ('name', models.CharField(max_length=200)),
                ('site_type', models.CharField(choices=[('STORE', 'Store'), ('WAREHOUSE', 'Warehouse'), ('MARKDOWN', 'Markdown Outlet')], default='STORE', max_length=20)),
                ('is_markdown', models.BooleanField(default=False)),
                ('enables_on_sale', models.BooleanField(default=False)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'sites',
                'ordering': ['code'],
            },
        ),
    ]
