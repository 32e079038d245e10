"""
Helm chart file templates.

Values are substituted with '[[ name ]]'; everything in '{{ }}' is left for
Helm to render at install time.
"""

CHART_YAML_TEMPLATE = """apiVersion: v2
name: [[ chart_name ]]
description: A Helm chart for [[ chart_name ]] simulated microservices
type: application
version: 0.1.0
appVersion: "0.1.0"
keywords:
- challenge
- observability
"""

APP_README_TEMPLATE = """## Introduction

Write description for Rancher App '[[ chart_name ]]'
"""

QUESTIONS_TEMPLATE = """questions:
- variable: traceEnabled
  label: "Tracing"
  type: boolean
  default: false
  description: "Export traces to the OpenTelemetry collector"
  group: Observability
- variable: metricsEnabled
  label: "Metrics"
  type: boolean
  default: false
  description: "Export metrics to the OpenTelemetry collector"
  group: Observability
"""

VALUES_TEMPLATE = """nameOverride: ''
fullnameOverride: ''
otelHttpEndpoint: opentelemetry-collector.open-telemetry.svc.cluster.local:4318
traceEnabled: false
metricsEnabled: false
image: service-sim:latest
resources:
  requests:
    memory: '64Mi'
    cpu: '5m'
  limits:
    memory: '128Mi'
    cpu: '50m'
"""

HELPERS_TPL_TEMPLATE = """{{/*
Expand the name of the chart.
*/}}
{{- define "common.name" -}}
{{- default .Chart.Name .Values.nameOverride | trunc 63 | trimSuffix "-" }}
{{- end }}

{{/*
Create a default fully qualified app name.
We truncate at 63 chars because some Kubernetes name fields are limited to this (by the DNS naming spec).
If release name contains chart name it will be used as a full name.
*/}}
{{- define "common.fullname" -}}
{{- if .Values.fullnameOverride }}
{{- .Values.fullnameOverride | trunc 63 | trimSuffix "-" }}
{{- else }}
{{- $name := default .Chart.Name .Values.nameOverride }}
{{- if contains $name .Release.Name }}
{{- .Release.Name | trunc 63 | trimSuffix "-" }}
{{- else }}
{{- printf "%s-%s" .Release.Name $name | trunc 63 | trimSuffix "-" }}
{{- end }}
{{- end }}
{{- end }}

{{/*
Create chart name and version as used by the chart label.
*/}}
{{- define "common.chart" -}}
{{- printf "%s-%s" .Chart.Name .Chart.Version | replace "+" "_" | trunc 63 | trimSuffix "-" }}
{{- end }}

{{/*
Common labels
*/}}
{{- define "common.labels" -}}
helm.sh/chart: {{ include "common.chart" . }}
{{ include "common.selectorLabels" . }}
{{- if .Chart.AppVersion }}
app.kubernetes.io/version: {{ .Chart.AppVersion | quote }}
{{- end }}
app.kubernetes.io/managed-by: {{ .Release.Service }}
{{- end }}

{{/*
Selector labels
*/}}
{{- define "common.selectorLabels" -}}
app.kubernetes.io/name: {{ include "common.name" . }}
app.kubernetes.io/instance: {{ .Release.Name }}
{{- end }}
"""

CONFIG_MAP_TEMPLATE = """apiVersion: v1
kind: ConfigMap
metadata:
  name: [[ service_name ]]-cm
  labels:
    {{- include "common.labels" . | nindent 4 }}
data:
  config.toml: |
     [[ config | indent(5) ]]

     [otel.trace]
     enabled = {{ .Values.traceEnabled }}
     tracer-name = "[[ service_name ]]"
     http-endpoint = "{{ .Values.otelHttpEndpoint }}"
     insecure = true

     [otel.metrics]
     enabled = {{ .Values.metricsEnabled }}
     http-endpoint = "{{ .Values.otelHttpEndpoint }}"
     insecure = true
"""

DEPLOYMENT_TEMPLATE = """apiVersion: apps/v1
kind: Deployment
metadata:
  name: [[ service_name ]]
  labels:
    service: [[ service_name ]]
    {{- include "common.labels" . | nindent 4 }}
spec:
  replicas: 1
  selector:
    matchLabels:
      service: [[ service_name ]]
      {{- include "common.selectorLabels" . | nindent 6 }}
  template:
    metadata:
      labels:
        {{- include "common.labels" . | nindent 8 }}
        service: [[ service_name ]]
      annotations:
        checksum/config: '{{ include (print $.Template.BasePath "/[[ service_name ]]-cm.yaml") . | sha256sum }}'
    spec:
      containers:
      - name: [[ service_name ]]
        image: {{ .Values.image }}
        env:
        - name: CONFIG_FILE
          value: /etc/app/config.toml
        ports:
        - containerPort: 8080
        resources:
          {{- toYaml .Values.resources | nindent 12 }}
        volumeMounts:
        - name: config-volume
          mountPath: /etc/app
      volumes:
      - name: config-volume
        configMap:
          name: [[ service_name ]]-cm
          items:
          - key: config.toml
            path: config.toml
"""

SERVICE_TEMPLATE = """apiVersion: v1
kind: Service
metadata:
  name: [[ service_name ]]
  labels:
    service: [[ service_name ]]
    {{- include "common.labels" . | nindent 4 }}
spec:
  selector:
    service: [[ service_name ]]
    {{- include "common.selectorLabels" . | nindent 4 }}
  ports:
    - protocol: TCP
      port: 80
      targetPort: 8080
  type: ClusterIP
"""

CHART_FILES = {
    "Chart.yaml": CHART_YAML_TEMPLATE,
    "app-readme.md": APP_README_TEMPLATE,
    "questions.yaml": QUESTIONS_TEMPLATE,
    "values.yaml": VALUES_TEMPLATE,
    "templates/_helpers.tpl": HELPERS_TPL_TEMPLATE,
}

SERVICE_FILES = {
    "cm": CONFIG_MAP_TEMPLATE,
    "deployment": DEPLOYMENT_TEMPLATE,
    "svc": SERVICE_TEMPLATE,
}
