from rest_framework import serializers


class ReconciledTableSerializer(serializers.Serializer):
    """
    Renders a ReconciledTable: the stored row plus its effective status.
    ``status`` is what clients should display; ``stored_status`` is kept for
    diagnostics.
    """

    id = serializers.UUIDField(source="table.id")
    branch_id = serializers.UUIDField(source="table.branch_id")
    table_number = serializers.CharField(source="table.table_number")
    capacity = serializers.IntegerField(source="table.capacity")
    section = serializers.CharField(source="table.section")
    status = serializers.CharField()
    stored_status = serializers.CharField(source="table.status")
    occupied = serializers.BooleanField()
    current_order_id = serializers.UUIDField(source="table.current_order_id", allow_null=True)
    occupied_by = serializers.CharField(source="table.occupied_by", allow_null=True)
    occupied_at = serializers.DateTimeField(source="table.occupied_at", allow_null=True)
    reserved_for = serializers.DateTimeField(source="table.reserved_for", allow_null=True)
    reserved_until = serializers.DateTimeField(source="table.reserved_until", allow_null=True)
    reserved_by = serializers.JSONField(source="table.reserved_by", allow_null=True)
    reservation_notes = serializers.CharField(source="table.reservation_notes")
    updated_at = serializers.DateTimeField(source="table.updated_at")


class UpdateTableStatusSerializer(serializers.Serializer):
    status = serializers.CharField(max_length=20)


class ReserveTableSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=150)
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True, default="")
    party_size = serializers.IntegerField(min_value=1)
    reserved_for = serializers.DateTimeField()
    reserved_until = serializers.DateTimeField()
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class TableStatsSerializer(serializers.Serializer):
    total = serializers.IntegerField()
    available = serializers.IntegerField()
    occupied = serializers.IntegerField()
    reserved = serializers.IntegerField()
    cleaning = serializers.IntegerField()
    total_capacity = serializers.IntegerField()
    occupancy_rate = serializers.FloatField()


def table_payload(reconciled) -> dict:
    """Plain-dict rendering of a ReconciledTable, safe to send over the channel layer."""
    return dict(ReconciledTableSerializer(reconciled).data)
