from rest_framework import status, viewsets
from rest_framework.permissions import IsAuthenticated
from rest_framework.decorators import action
from rest_framework.response import Response

from .permissions import IsPrivilegedRole, require_learner_access, require_privileged, same_organization
from .serializers import (
    AssignmentSerializer, AssignmentCreateSerializer, AssignmentListQuerySerializer,
    AssignmentCompleteSerializer, CertificateUploadSerializer, CertificateReviewSerializer,
    BulkDeleteSerializer,
)
from .services import assignment_lifecycle, bulk_operations, certificates
from lms.exceptions import NotFound


class AssignmentViewSet(viewsets.ViewSet):
    """
    Training assignments.

    GET  /api/admin/assignments/                          list (own, or organization for admins)
    POST /api/admin/assignments/                          assign content to users
    POST /api/admin/assignments/{id}/start/               pending -> in_progress
    POST /api/admin/assignments/{id}/complete/            -> completed (admins)
    POST /api/admin/assignments/{id}/certificate/         learner marks certificate uploaded
    POST /api/admin/assignments/{id}/certificate/review/  verify or reject (admins)
    POST /api/admin/assignments/bulk-delete/              delete many, per-item results
    """

    def _assignment_for(self, request, pk):
        assignment = assignment_lifecycle.get_assignment(pk)
        if assignment.assigned_to_id != request.user.id and not same_organization(
                request.user, assignment.organization_id):
            # other tenants' rows are invisible rather than forbidden
            raise NotFound(f'Assignment not found: {pk}')
        require_learner_access(request.user, assignment.assigned_to)
        return assignment

    def list(self, request):
        query = AssignmentListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        qs = assignment_lifecycle.list_assignments(
            request.user,
            user_id=query.validated_data.get('user_id'),
            status=query.validated_data.get('status'),
        )
        return Response(AssignmentSerializer(qs, many=True).data)

    def create(self, request):
        serializer = AssignmentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = assignment_lifecycle.create_assignments(request.user, **serializer.validated_data)
        return Response(result, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def start(self, request, pk=None):
        assignment = self._assignment_for(request, pk)
        transitioned = assignment_lifecycle.start_assignment(assignment.id)
        assignment.refresh_from_db()
        return Response({'transitioned': transitioned, 'assignment': AssignmentSerializer(assignment).data})

    @action(detail=True, methods=['post'])
    def complete(self, request, pk=None):
        require_privileged(request.user, 'complete assignments')
        assignment = self._assignment_for(request, pk)
        serializer = AssignmentCompleteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        transitioned = assignment_lifecycle.complete_assignment(assignment.id, serializer.validated_data['score'])
        assignment.refresh_from_db()
        return Response({'transitioned': transitioned, 'assignment': AssignmentSerializer(assignment).data})

    @action(detail=True, methods=['post'])
    def certificate(self, request, pk=None):
        serializer = CertificateUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        assignment = certificates.upload_certificate(pk, request.user, notes=serializer.validated_data['notes'])
        return Response(AssignmentSerializer(assignment).data)

    @action(detail=True, methods=['post'], url_path='certificate/review')
    def review_certificate(self, request, pk=None):
        serializer = CertificateReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        assignment = certificates.review_certificate(
            pk, request.user,
            approve=serializer.validated_data['approve'],
            notes=serializer.validated_data['notes'],
        )
        return Response(AssignmentSerializer(assignment).data)

    @action(detail=False, methods=['post'], url_path='bulk-delete', permission_classes=[IsAuthenticated, IsPrivilegedRole])
    def bulk_delete(self, request):
        serializer = BulkDeleteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        summary = bulk_operations.bulk_delete_assignments(serializer.validated_data['assignment_ids'], request.user)
        return Response(summary)
