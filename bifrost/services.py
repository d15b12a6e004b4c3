# ᚾᚨᛗᛖᛊ • Names - AWS Service Prefixes
"""
IAM action prefixes and the service names they stand for.

The table covers the prefixes seen in IAM policies for commonly used
services. A prefix missing here still gets a graph node; exporters label it
``UNKNOWN SERVICE PREFIX <prefix>`` and the CLI refuses to report on it.
"""

from typing import Dict

WILDCARD_SERVICE = '*'

SERVICE_NAMES: Dict[str, str] = {
    'access-analyzer': 'IAM Access Analyzer',
    'account': 'AWS Account Management',
    'acm': 'AWS Certificate Manager',
    'acm-pca': 'AWS Private Certificate Authority',
    'airflow': 'Amazon Managed Workflows for Apache Airflow',
    'amplify': 'AWS Amplify',
    'apigateway': 'Amazon API Gateway',
    'appconfig': 'AWS AppConfig',
    'application-autoscaling': 'Application Auto Scaling',
    'appmesh': 'AWS App Mesh',
    'apprunner': 'AWS App Runner',
    'appstream': 'Amazon AppStream 2.0',
    'appsync': 'AWS AppSync',
    'aoss': 'Amazon OpenSearch Serverless',
    'athena': 'Amazon Athena',
    'autoscaling': 'Amazon EC2 Auto Scaling',
    'aws-marketplace': 'AWS Marketplace',
    'aws-portal': 'AWS Billing Console',
    'backup': 'AWS Backup',
    'batch': 'AWS Batch',
    'bedrock': 'Amazon Bedrock',
    'billing': 'AWS Billing',
    'budgets': 'AWS Budget Service',
    'ce': 'AWS Cost Explorer Service',
    'chatbot': 'AWS Chatbot',
    'cloud9': 'AWS Cloud9',
    'cloudformation': 'AWS CloudFormation',
    'cloudfront': 'Amazon CloudFront',
    'cloudhsm': 'AWS CloudHSM',
    'cloudshell': 'AWS CloudShell',
    'cloudtrail': 'AWS CloudTrail',
    'cloudwatch': 'Amazon CloudWatch',
    'codeartifact': 'AWS CodeArtifact',
    'codebuild': 'AWS CodeBuild',
    'codecommit': 'AWS CodeCommit',
    'codedeploy': 'AWS CodeDeploy',
    'codeguru-reviewer': 'Amazon CodeGuru Reviewer',
    'codepipeline': 'AWS CodePipeline',
    'codestar-connections': 'AWS CodeStar Connections',
    'cognito-identity': 'Amazon Cognito Identity',
    'cognito-idp': 'Amazon Cognito User Pools',
    'cognito-sync': 'Amazon Cognito Sync',
    'comprehend': 'Amazon Comprehend',
    'config': 'AWS Config',
    'connect': 'Amazon Connect',
    'cur': 'AWS Cost and Usage Report',
    'databrew': 'AWS Glue DataBrew',
    'datasync': 'AWS DataSync',
    'dax': 'Amazon DynamoDB Accelerator (DAX)',
    'detective': 'Amazon Detective',
    'devicefarm': 'AWS Device Farm',
    'directconnect': 'AWS Direct Connect',
    'dlm': 'Amazon Data Lifecycle Manager',
    'dms': 'AWS Database Migration Service',
    'ds': 'AWS Directory Service',
    'dynamodb': 'Amazon DynamoDB',
    'ebs': 'Amazon Elastic Block Store',
    'ec2': 'Amazon EC2',
    'ec2messages': 'Amazon Message Delivery Service',
    'ecr': 'Amazon Elastic Container Registry',
    'ecr-public': 'Amazon Elastic Container Registry Public',
    'ecs': 'Amazon Elastic Container Service',
    'eks': 'Amazon Elastic Kubernetes Service',
    'elasticache': 'Amazon ElastiCache',
    'elasticbeanstalk': 'AWS Elastic Beanstalk',
    'elasticfilesystem': 'Amazon Elastic File System',
    'elasticloadbalancing': 'Elastic Load Balancing',
    'elasticmapreduce': 'Amazon EMR',
    'elastictranscoder': 'Amazon Elastic Transcoder',
    'emr-containers': 'Amazon EMR on EKS',
    'emr-serverless': 'Amazon EMR Serverless',
    'es': 'Amazon OpenSearch Service',
    'events': 'Amazon EventBridge',
    'execute-api': 'Amazon API Gateway Execute API',
    'firehose': 'Amazon Kinesis Data Firehose',
    'fms': 'AWS Firewall Manager',
    'fsx': 'Amazon FSx',
    'glacier': 'Amazon S3 Glacier',
    'globalaccelerator': 'AWS Global Accelerator',
    'glue': 'AWS Glue',
    'grafana': 'Amazon Managed Grafana',
    'guardduty': 'Amazon GuardDuty',
    'health': 'AWS Health APIs and Notifications',
    'iam': 'AWS Identity and Access Management (IAM)',
    'identitystore': 'AWS Identity Store',
    'imagebuilder': 'Amazon EC2 Image Builder',
    'inspector': 'Amazon Inspector',
    'inspector2': 'Amazon Inspector2',
    'iot': 'AWS IoT',
    'kafka': 'Amazon Managed Streaming for Apache Kafka',
    'kendra': 'Amazon Kendra',
    'kinesis': 'Amazon Kinesis',
    'kinesisanalytics': 'Amazon Kinesis Analytics',
    'kinesisvideo': 'Amazon Kinesis Video Streams',
    'kms': 'AWS Key Management Service',
    'lakeformation': 'AWS Lake Formation',
    'lambda': 'AWS Lambda',
    'lightsail': 'Amazon Lightsail',
    'logs': 'Amazon CloudWatch Logs',
    'macie2': 'Amazon Macie',
    'mediaconvert': 'AWS Elemental MediaConvert',
    'mq': 'Amazon MQ',
    'network-firewall': 'AWS Network Firewall',
    'networkmanager': 'AWS Network Manager',
    'organizations': 'AWS Organizations',
    'personalize': 'Amazon Personalize',
    'pi': 'AWS Performance Insights',
    'pricing': 'AWS Price List',
    'quicksight': 'Amazon QuickSight',
    'ram': 'AWS Resource Access Manager',
    'rds': 'Amazon RDS',
    'rds-data': 'Amazon RDS Data API',
    'rds-db': 'Amazon RDS IAM Authentication',
    'redshift': 'Amazon Redshift',
    'redshift-data': 'Amazon Redshift Data API',
    'redshift-serverless': 'Amazon Redshift Serverless',
    'rekognition': 'Amazon Rekognition',
    'resource-groups': 'AWS Resource Groups',
    'route53': 'Amazon Route 53',
    'route53domains': 'Amazon Route 53 Domains',
    'route53resolver': 'Amazon Route 53 Resolver',
    's3': 'Amazon S3',
    's3-object-lambda': 'Amazon S3 Object Lambda',
    'sagemaker': 'Amazon SageMaker',
    'savingsplans': 'AWS Savings Plans',
    'scheduler': 'Amazon EventBridge Scheduler',
    'schemas': 'Amazon EventBridge Schemas',
    'secretsmanager': 'AWS Secrets Manager',
    'securityhub': 'AWS Security Hub',
    'serverlessrepo': 'AWS Serverless Application Repository',
    'servicecatalog': 'AWS Service Catalog',
    'servicediscovery': 'AWS Cloud Map',
    'servicequotas': 'Service Quotas',
    'ses': 'Amazon SES',
    'shield': 'AWS Shield',
    'signin': 'AWS Sign-In',
    'sns': 'Amazon SNS',
    'sqs': 'Amazon SQS',
    'ssm': 'AWS Systems Manager',
    'ssmmessages': 'Amazon Session Manager Message Gateway Service',
    'sso': 'AWS IAM Identity Center',
    'sso-directory': 'AWS IAM Identity Center Directory',
    'states': 'AWS Step Functions',
    'storagegateway': 'AWS Storage Gateway',
    'sts': 'AWS Security Token Service',
    'support': 'AWS Support',
    'swf': 'Amazon Simple Workflow Service',
    'tag': 'Amazon Resource Group Tagging API',
    'textract': 'Amazon Textract',
    'timestream': 'Amazon Timestream',
    'transcribe': 'Amazon Transcribe',
    'transfer': 'AWS Transfer Family',
    'translate': 'Amazon Translate',
    'trustedadvisor': 'AWS Trusted Advisor',
    'waf': 'AWS WAF Classic',
    'waf-regional': 'AWS WAF Regional',
    'wafv2': 'AWS WAF V2',
    'wellarchitected': 'AWS Well-Architected Tool',
    'workspaces': 'Amazon WorkSpaces',
    'xray': 'AWS X-Ray',
}


def is_known_service(prefix: str) -> bool:
    return prefix.lower() in SERVICE_NAMES


def service_display_name(prefix: str) -> str:
    """Service name for a prefix, or ``UNKNOWN SERVICE PREFIX <prefix>``."""
    if prefix == WILDCARD_SERVICE:
        return 'EVERYTHING!'
    return SERVICE_NAMES.get(prefix.lower(), f'UNKNOWN SERVICE PREFIX {prefix}')
