"""
Node Boss Views

Referral overview for referrers and admins, plus the share purchase and
payment confirmation endpoints.
"""
import logging

from django.shortcuts import get_object_or_404
from django.contrib.auth.decorators import login_required
from django.core.paginator import Paginator
from django.http import JsonResponse
from django.views.decorators.http import require_POST, require_GET
from django.db.models import Q, Prefetch

from .models import NodeBoss, NodeSell, NodeReferral
from .referral_service import NodeSellError, record_node_sell, complete_node_sell, cancel_node_sell

logger = logging.getLogger(__name__)


def _overall_status(sells):
    """Referral status as seen from its sales"""
    statuses = {s.status for s in sells}
    for status in (NodeSell.STATUS_COMPLETED, NodeSell.STATUS_FAILED, NodeSell.STATUS_CANCELED):
        if status in statuses:
            return status
    return NodeSell.STATUS_PENDING


def _serialize_referral(referral):
    sells = list(referral.node_sells.all())
    parent = referral.parent_referral
    return {
        'id': referral.pk,
        'referral_link': referral.referral_link,
        'user': {
            'id': referral.user_id,
            'name': referral.user.get_full_name() or referral.user.username,
            'email': referral.user.email,
        },
        'node_boss': {'id': referral.node_boss_id, 'name': referral.node_boss.name},
        'commission_percentage': str(referral.commission_percentage),
        'is_big_boss': referral.is_big_boss,
        'level': referral.level,
        'parent_referral': {
            'id': parent.pk,
            'referral_link': parent.referral_link,
            'is_big_boss': parent.is_big_boss,
        } if parent else None,
        'completed_sales_count': len([s for s in sells if s.status == NodeSell.STATUS_COMPLETED]),
        'status': _overall_status(sells),
        'referral_status': referral.status,
        'buyers': [
            {
                'id': s.pk,
                'name': s.buyer_name,
                'email': s.buyer_email,
                'amount': str(s.amount),
                'status': s.status,
                'certificate_id': s.certificate_id,
            }
            for s in sells
        ],
        'created_at': referral.created_at.isoformat(),
    }


@login_required
@require_GET
def referral_list(request):
    """Referral links with filters; staff see every referral"""
    base = NodeReferral.objects.all()
    if not request.user.is_staff:
        base = base.filter(user=request.user)

    referrals = base.select_related(
        'user', 'node_boss', 'parent_referral'
    ).prefetch_related(
        Prefetch('node_sells', queryset=NodeSell.objects.order_by('-created_at'))
    )

    search = request.GET.get('search', '').strip()
    if search:
        referrals = referrals.filter(
            Q(referral_link__icontains=search)
            | Q(user__username__icontains=search)
            | Q(user__first_name__icontains=search)
            | Q(user__last_name__icontains=search)
            | Q(user__email__icontains=search)
            | Q(node_boss__name__icontains=search)
            | Q(node_sells__buyer_name__icontains=search)
            | Q(node_sells__buyer_email__icontains=search)
            | Q(node_sells__certificate_id__icontains=search)
        ).distinct()

    status = request.GET.get('status')
    if status in (NodeReferral.STATUS_ACTIVE, NodeReferral.STATUS_INACTIVE):
        referrals = referrals.filter(status=status)

    referral_type = request.GET.get('type')
    if referral_type == 'big_boss':
        referrals = referrals.filter(is_big_boss=True)
    elif referral_type == 'regular':
        referrals = referrals.filter(is_big_boss=False)

    paginator = Paginator(referrals.order_by('-created_at'), 10)
    page = paginator.get_page(request.GET.get('page', 1))

    stats = {
        'total_referrals': base.count(),
        'big_boss_referrals': base.filter(is_big_boss=True).count(),
        'active_referrals': base.filter(status=NodeReferral.STATUS_ACTIVE).count(),
        'completed_sales': NodeSell.objects.filter(
            node_referral__in=base, status=NodeSell.STATUS_COMPLETED
        ).count(),
    }

    return JsonResponse({
        'success': True,
        'referrals': [_serialize_referral(r) for r in page],
        'stats': stats,
        'page': page.number,
        'num_pages': paginator.num_pages,
    })


@login_required
@require_POST
def node_sell_create(request, node_boss_id):
    """Buy into a node boss; ``?ref=`` carries the referral link used"""
    node_boss = get_object_or_404(NodeBoss, id=node_boss_id)

    try:
        node_sell = record_node_sell(
            node_boss=node_boss,
            amount=request.POST.get('amount'),
            buyer_name=request.POST.get('buyer_name') or request.user.get_full_name(),
            buyer_email=request.POST.get('buyer_email') or request.user.email,
            user=request.user,
            message=request.POST.get('message'),
            ref=request.GET.get('ref') or request.POST.get('ref'),
            request=request,
        )
    except NodeSellError as e:
        return JsonResponse({'success': False, 'error': str(e)}, status=400)

    return JsonResponse({
        'success': True,
        'node_sell_id': node_sell.pk,
        'certificate_id': node_sell.certificate_id,
        'amount': str(node_sell.amount),
        'status': node_sell.status,
        'node_share_id': node_sell.node_share_id,
        'referral_id': node_sell.node_referral_id,
    }, status=201)


@login_required
@require_POST
def node_sell_complete(request, node_sell_id):
    """Payment confirmation, called by staff or the payment webhook bridge"""
    if not request.user.is_staff:
        return JsonResponse({'success': False, 'error': 'Access denied'}, status=403)

    get_object_or_404(NodeSell, id=node_sell_id)
    transaction_id = request.POST.get('transaction_id')
    if not transaction_id:
        return JsonResponse({'success': False, 'error': 'transaction_id is required'}, status=400)

    try:
        commission = complete_node_sell(
            node_sell_id,
            transaction_id=transaction_id,
            payment_method=request.POST.get('payment_method') or 'card',
            request=request,
        )
    except NodeSellError as e:
        return JsonResponse({'success': False, 'error': str(e)}, status=409)

    return JsonResponse({'success': True, 'commission': str(commission)})


@login_required
@require_POST
def node_sell_cancel(request, node_sell_id):
    node_sell = get_object_or_404(NodeSell, id=node_sell_id)
    if not request.user.is_staff and node_sell.user_id != request.user.pk:
        return JsonResponse({'success': False, 'error': 'Access denied'}, status=403)

    try:
        cancel_node_sell(node_sell_id, request=request)
    except NodeSellError as e:
        return JsonResponse({'success': False, 'error': str(e)}, status=409)

    return JsonResponse({'success': True})
